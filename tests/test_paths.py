import asyncio

import pytest

import drivepath_lib as dp


def test_find_path_resolves_segments(drive, tree):
    node = asyncio.run(drive.find_path("/Backup/2026/report.txt"))
    assert node["id"] == tree["report"]["id"]
    assert node["isFolder"] is False


def test_find_path_tolerates_extra_slashes(drive, tree):
    node = asyncio.run(drive.resolve_path("Backup//2026/"))
    assert node["id"] == tree["year"]["id"]
    assert node["isFolder"] is True


def test_find_path_empty_returns_root(drive, fake):
    assert asyncio.run(drive.find_path("/")) == "root"
    assert asyncio.run(drive.find_path("", root="elsewhere")) == "elsewhere"
    assert fake.calls == []


def test_find_path_missing_segment(drive, tree):
    with pytest.raises(dp.NotFound) as exc:
        asyncio.run(drive.find_path("/Backup/1999/report.txt"))
    assert exc.value.context["name"] == "1999"


def test_find_path_through_a_file_is_bad_request(drive, tree):
    with pytest.raises(dp.BadRequest):
        asyncio.run(drive.find_path("/Backup/2026/report.txt/deeper"))


def test_step_right_prefers_newest_duplicate(drive, fake, tree):
    newer = fake.add_file(tree["year"]["id"], "report.txt", b"v2")
    node = asyncio.run(drive.find_path("/Backup/2026/report.txt"))
    assert node["id"] == newer["id"]


def test_step_right_unique_detects_duplicates(drive, fake, tree):
    fake.add_file(tree["year"]["id"], "report.txt", b"v2")
    step = drive.step_right(unique=True)
    with pytest.raises(dp.AmbiguousResult) as exc:
        asyncio.run(step(tree["year"], "report.txt"))
    assert len(exc.value.context["files"]) == 2


def test_segments_resolve_sequentially(drive, fake, tree):
    asyncio.run(drive.find_path("/Backup/2026/report.txt"))
    parents = [q["q"].split(" in parents")[0] for q in fake.queries]
    assert parents == ["'root'", f"'{tree['backup']['id']}'", f"'{tree['year']['id']}'"]


def test_create_path_creates_only_missing(drive, fake, tree):
    node = asyncio.run(drive.create_path("/Backup/2026/q3/week1"))
    assert node["isNew"] is True and node["isFolder"] is True
    assert fake.calls.count("create") == 2
    q3 = fake.children(tree["year"]["id"], "q3")
    assert len(q3) == 1
    assert node["parents"] == [q3[0]["id"]]


def test_create_path_is_idempotent(drive, fake):
    first = asyncio.run(drive.create_path("/A/B"))
    second = asyncio.run(drive.create_path("/A/B"))
    assert first["id"] == second["id"]
    assert "isNew" not in second
    assert fake.calls.count("create") == 2


def test_create_path_does_not_mask_other_errors(drive, fake, tree):
    fake.add_folder(tree["backup"]["id"], "2026")
    factory = drive.folder_factory()
    # default stepper is recent, so duplicates pick the newest instead of raising
    node = asyncio.run(factory(tree["backup"], "2026"))
    assert node["name"] == "2026"

    with pytest.raises(dp.BadRequest):
        asyncio.run(factory(tree["report"], "x"))
    assert "create" not in fake.calls


def test_folder_creator_sends_folder_metadata(drive, fake):
    node = asyncio.run(drive.folder_creator()("root", "New"))
    assert node["mimeType"] == dp.FOLDER_MIME_TYPE
    assert node["parents"] == ["root"]
    assert node["isNew"] is True
