"""WSGI entry point for Gunicorn (gunicorn wsgi:app)."""
import os

from app import create_app

# e.g. APP_CONFIG=config.TestingConfig for a throwaway local instance
app = create_app(os.getenv('APP_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run()
