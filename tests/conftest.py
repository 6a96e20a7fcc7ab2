import pytest

from drivepath_lib import DriveClient, DriveX
from fakes import FakeDrive


@pytest.fixture
def fake():
    return FakeDrive()


@pytest.fixture
def drive(fake):
    return DriveX(fake, "root", "drive", salt="pepper", chunk_size=4)


@pytest.fixture
def client(fake):
    return DriveClient(fake, salt="pepper", chunk_size=4)


@pytest.fixture
def tree(fake):
    """/Backup/2026/report.txt plus an empty /Backup/old folder."""
    backup = fake.add_folder("root", "Backup")
    year = fake.add_folder(backup["id"], "2026")
    old = fake.add_folder(backup["id"], "old")
    report = fake.add_file(year["id"], "report.txt", b"hello world\n")
    return {"backup": backup, "year": year, "old": old, "report": report}
