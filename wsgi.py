"""WSGI entry point for production deployment (e.g. gunicorn wsgi:app)."""
import sys
import logging
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from main import _init_components
from web.app import create_app

logger = logging.getLogger("wordwise.wsgi")

components = _init_components()
app = create_app(components["config"], components)

logger.info(f"Serving dashboard with database {components['db'].db_path}")
