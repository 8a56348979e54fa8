#!/usr/bin/env python
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file, fallback to .env.development
env_path = Path('.env')
if not env_path.exists():
    env_path = Path('.env.development')
load_dotenv(env_path)

from app import create_app, db  # noqa: E402
from app.extensions import socketio  # noqa: E402
from app.models import Location  # noqa: E402

app = create_app()


def init_database():
    """Create tables and the predefined locations."""
    with app.app_context():
        db.create_all()
        Location.get_predefined_locations()
        print('Database initialized successfully')


if __name__ == '__main__':
    if os.environ.get('FLASK_ENV') == 'development':
        with app.app_context():
            if Location.query.count() == 0:
                print("No locations found, initializing database...")
                init_database()
        socketio.run(app, debug=True)
    else:
        # Production mode - let gunicorn handle the serving
        socketio.run(app, debug=app.config['DEBUG'])
