import os

from reliva import create_app
from reliva.extensions.extensions import socketio

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.getenv("FLASK_RUN_PORT", 8080))
    socketio.run(app, host=host, port=port, debug=app.config.get("DEBUG", False))
