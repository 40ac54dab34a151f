"""
WSGI entrypoint for the trace export service. Point gunicorn/uwsgi here:

    gunicorn 'wsgi:app' --bind 0.0.0.0:5000 --workers 2

Set FLASK_ENV=development to seed sample traces into the configured database.
"""

from exportapp import create_app

app = create_app()
