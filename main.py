import sentry_sdk
from dotenv import load_dotenv

load_dotenv()

from app.container import get_wire_container  # noqa: E402
from app.create_app import create_app  # noqa: E402
from logging_config import setup_logging  # noqa: E402
from settings import settings  # noqa: E402

if settings.sentry.is_enabled:
    sentry_sdk.init(
        dsn=settings.sentry.dsn,
        environment=settings.environment.value,
        traces_sample_rate=settings.sentry.traces_sample_rate,
        send_default_pii=True,
    )

setup_logging()
container = get_wire_container()
app = create_app(container)
