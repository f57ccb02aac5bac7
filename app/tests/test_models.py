import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.models import Program
from app.repositories.program_repository import ProgramRepository


# Test program creation
def test_program_creation(test_db):
    repo = ProgramRepository(test_db)
    program = repo.save(Program(program_name="Systems Engineering"))

    # Store assigns identity and version
    assert program.program_id
    assert program.version == 1
    assert program.educational_areas == []
    assert program.area_count == 0


# Test name uniqueness constraint
def test_program_name_uniqueness(test_db):
    repo = ProgramRepository(test_db)
    repo.save(Program(program_name="Duplicate"))

    with pytest.raises(IntegrityError):
        repo.save(Program(program_name="Duplicate"))


# Test email uniqueness constraint
def test_program_email_uniqueness(test_db):
    repo = ProgramRepository(test_db)
    repo.save(Program(program_name="First", email="same@university.edu"))

    with pytest.raises(IntegrityError):
        repo.save(Program(program_name="Second", email="same@university.edu"))


def test_save_tracks_area_count_and_version(test_db):
    repo = ProgramRepository(test_db)
    program = repo.save(Program(program_name="Physics"))

    program.educational_areas = [
        {"educational_area_id": f"{program.program_id}A01", "name": "Optics", "leader_id": None, "image": None}
    ]
    program = repo.save(program)

    assert program.area_count == 1
    assert program.version == 2


def test_stale_version_is_rejected(test_db, session_factory):
    repo = ProgramRepository(test_db)
    program = repo.save(Program(program_name="Shared"))

    other_db = session_factory()
    try:
        other = ProgramRepository(other_db)
        stale = other.find_by_id(program.program_id)

        program.image = "new.png"
        repo.save(program)

        stale.image = "old.png"
        with pytest.raises(StaleDataError):
            other.save(stale)
    finally:
        other_db.close()


def test_queries(test_db):
    repo = ProgramRepository(test_db)
    with_areas = Program(program_name="Music", email="Music@University.edu")
    with_areas.educational_areas = [{"educational_area_id": "xA01", "name": "Piano"},
                                    {"educational_area_id": "xA02", "name": "Violin"}]
    repo.save(with_areas)
    repo.save(Program(program_name="Dance"))
    repo.save(Program(program_name="Music Therapy"))

    assert [p.program_name for p in repo.find_all_sorted_by_name()] == ["Dance", "Music", "Music Therapy"]
    assert len(repo.find_all()) == 3
    assert repo.find_by_name("Dance").program_name == "Dance"
    assert repo.find_by_email("music@university.edu").program_name == "Music"
    assert [p.program_name for p in repo.find_by_name_contains("MUSIC")] == ["Music", "Music Therapy"]

    assert repo.count() == 3
    assert repo.count_with_non_empty_areas() == 1
    assert repo.count_with_empty_or_missing_areas() == 2
    assert repo.sum_areas() == 2


def test_delete_by_id(test_db):
    repo = ProgramRepository(test_db)
    program = repo.save(Program(program_name="Temporary"))

    repo.delete_by_id(program.program_id)
    repo.delete_by_id("does-not-exist")

    assert repo.find_by_id(program.program_id) is None
    assert repo.count() == 0
