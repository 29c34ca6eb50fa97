import os

os.environ.setdefault('SOCKETIO_ASYNC_MODE', 'eventlet')

from app import create_app  # noqa: E402
from scheduler import start_scheduler  # noqa: E402

app = create_app()
if app.config.get('SCHEDULER_ENABLED'):
    start_scheduler(app)
