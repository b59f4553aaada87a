from app.backend.src.core.config import get_settings
from app.backend.src.db import get_engine
from app.backend.src.models import *  # noqa
from app.backend.src.models.base import Base


def init_db():
    engine = get_engine()
    print(f"🚀 Connecting to {engine.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=engine)
    print(f"✅ Tables created; reports dispatch every {get_settings().report_dispatch_interval_seconds}s")


if __name__ == "__main__":
    init_db()
