"""
WSGI entry point.

Run locally:
  cd backend && flask --app wsgi run --port 5001
"""

from voicenotes import create_app
from voicenotes.config import Config

Config.validate()
app = create_app()
