"""Seed the development database with a demo hospital and report schedules."""

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.seed import seed_demo_hospital


def main() -> None:
    """Create tables (if needed) and load demo data into an empty database."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        result = seed_demo_hospital(session)

    if not result.created:
        print("Database already contains hospital data; nothing seeded.")
        return
    print("✅ Development data ready!")
    print(
        f"Departments: {result.departments}, patients: {result.patients}, "
        f"schedules due now: {result.schedules}"
    )


if __name__ == "__main__":
    main()
