import pytest

import drivepath_lib as dp


def test_search_string_orders_clauses():
    q = dp.search_string({"parent": "p1", "name": "a.txt", "isFolder": False, "trashed": False})
    assert q == (
        "'p1' in parents and name='a.txt' and "
        "mimeType != 'application/vnd.google-apps.folder' and trashed=false"
    )


def test_search_string_folder_and_properties():
    q = dp.search_string({"isFolder": True, "properties": {"kind": "backup"},
                          "appProperties": {"v": 2}, "starred": True})
    assert q == (
        "mimeType = 'application/vnd.google-apps.folder' and "
        "properties has { key='kind' and value='backup' } and "
        "appProperties has { key='v' and value='2' } and starred=true"
    )


def test_search_string_escapes_quotes():
    q = dp.search_string({"name": "it's a\\b"})
    assert q == "name='it\\'s a\\\\b'"


def test_search_string_refuses_match_all():
    with pytest.raises(dp.BadRequest):
        dp.search_string({"trashed": False})
    assert dp.search_string({"trashed": False}, allow_match_all_files=True) == "trashed=false"


def test_extract_terms_ignores_unknown_and_none():
    terms = dp.extract_terms({"name": "x", "limit": 5, "starred": None, "trashed": True})
    assert terms == {"name": "x", "trashed": True}


def test_check_search_outcomes():
    with pytest.raises(dp.BadRequest):
        dp.check_search({"files": None})
    with pytest.raises(dp.NotFound) as exc:
        dp.check_search({"files": [], "limit": 10})
    assert exc.value.context["files"] == []
    with pytest.raises(dp.AmbiguousResult):
        dp.check_search({"files": [{"id": 1}, {"id": 2}], "unique": True, "limit": 2})
    with pytest.raises(dp.TooManyResults):
        dp.check_search({"files": [{"id": 1}, {"id": 2}], "limit": 2})

    ok = dp.check_search({"files": [{"id": 1}], "recent": True, "limit": 1})
    assert ok["ok"] is True


def test_add_fields_from_keys():
    assert dp.add_fields_from_keys("id,name", {"name": 1, "isFolder": True, "starred": 1}) == "id,name,starred"
    # exact token match, not substring
    assert dp.add_fields_from_keys("id,mimeType", {"name": 1}) == "id,mimeType,name"


def test_get_folder_id():
    folder = {"id": "f1", "mimeType": dp.FOLDER_MIME_TYPE}
    assert dp.get_folder_id(folder) == "f1"
    assert dp.get_folder_id("root") == "root"
    for bad in (None, 42, "", {"id": "x", "mimeType": "text/plain"}):
        with pytest.raises(dp.BadRequest) as exc:
            dp.get_folder_id(bad)
        assert exc.value.context == {"folder": bad}


def test_metadata_helpers():
    meta = dp.add_is_folder(dp.add_new({"mimeType": dp.FOLDER_MIME_TYPE}))
    assert meta == {"mimeType": dp.FOLDER_MIME_TYPE, "isNew": True, "isFolder": True}
    assert dp.add_is_folder({"mimeType": "text/plain"})["isFolder"] is False
    assert dp.node_kind(None) == "file"
    assert dp.node_kind(meta) == "folder"


def test_path_helpers():
    assert dp.split_path("/a//b/") == ["a", "b"]
    assert dp.split_path("") == []
    assert dp.folder_from("/Backup/2026/report.txt") == "/Backup/2026"
    assert dp.folder_from("x/y") == "x"
    assert dp.name_from("/Backup/2026/report.txt") == "report.txt"
    assert dp.name_from("/") is None


def test_hex_id_from_email_normalizes():
    a = dp.hex_id_from_email(" Tester@Example.com ", "pepper")
    b = dp.hex_id_from_email("tester@example.com", "pepper")
    assert a == b and len(a) == 64
    with pytest.raises(dp.BadRequest):
        dp.hex_id_from_email("a@b.c", "")
