"""Flask extensions shared by the SpaHub application."""
from __future__ import annotations

from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy

# One SQLAlchemy instance bound to the app in create_app.
db = SQLAlchemy()

cors = CORS()
