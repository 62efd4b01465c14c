"""
Flask extensions shared by the models, services and blueprints.

    db             game/track/score tables
    migrate        ``flask db`` schema migrations
    cache          per-game scoreboard cache
    ma             response schemas
    login_manager  bearer-token player authentication
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_caching import Cache
from flask_login import LoginManager
from flask_marshmallow import Marshmallow

db = SQLAlchemy()
migrate = Migrate()
cache = Cache()
ma = Marshmallow()
login_manager = LoginManager()
