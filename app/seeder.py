# app/seeder.py
from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.repositories.program_repository import ProgramRepository
from app.schemas.program import EducationalAreaCreate, ProgramCreate
from app.services.program_service import ProgramService
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


SAMPLE_PROGRAMS = [
    {
        "program_name": "Systems Engineering",
        "email": "systems@university.edu",
        "areas": ["Software Engineering", "Networks and Infrastructure", "Data Science"],
    },
    {
        "program_name": "Electronic Engineering",
        "email": "electronics@university.edu",
        "areas": ["Embedded Systems", "Telecommunications"],
    },
    {
        "program_name": "Industrial Design",
        "email": None,
        "areas": [],
    },
]


def seed_programs(db: Session):
    """Seed sample programs and their educational areas, skipping existing ones"""
    service = ProgramService(ProgramRepository(db))
    created = 0

    for data in SAMPLE_PROGRAMS:
        if service.get_program_by_name(data["program_name"]) is not None:
            print(f"ℹ️  Program '{data['program_name']}' already exists")
            continue

        program = service.create_program(
            ProgramCreate(program_name=data["program_name"], email=data["email"])
        )
        for area_name in data["areas"]:
            service.create_educational_area(EducationalAreaCreate(name=area_name), program.program_id)
        created += 1

    print(f"✅ {created} programs seeded")


def run_seeder():
    """Main seeder function"""
    print("🌱 Starting database seeding...")

    init_db()
    print("✅ Database tables created")

    db = SessionLocal()
    try:
        seed_programs(db)
        print("🎉 Database seeding completed successfully!")
    except Exception as e:
        print(f"❌ Error during seeding: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    run_seeder()
