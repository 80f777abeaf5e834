from flask import Flask

from reliva.config import Config, origin_of
from reliva.db import db
from reliva.extensions.extensions import socketio
from reliva.routes.comment_routes import comment_bp
from reliva.routes.post_routes import post_bp
from reliva.socket_events import register_socket_events


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)

    cors_origins = list(app.config["CORS_ALLOWED_ORIGINS"])
    own_origin = origin_of(app.config["WS_BASE"])
    if own_origin not in cors_origins:
        cors_origins.append(own_origin)

    # handlers registered before init_app are replayed on every new server
    register_socket_events()
    socketio.init_app(app, cors_allowed_origins=cors_origins)

    app.register_blueprint(post_bp, url_prefix="/api")
    app.register_blueprint(comment_bp, url_prefix="/api")

    with app.app_context():
        db.create_all()

    return app
