"""
=============================================================================
NMF LIVE - APPLICATION ENTRY POINT (app.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This is the "front door" of the server. When you run "python app.py", the computer
starts a web server that:

  1. Starts and stops NMF detection (webcam, video file, network stream, or
     landmarks pushed from a browser running MediaPipe).
  2. Answers polling requests for the current labels ("eyebrows raised, mouth
     open, surprise") and the running transcript.
  3. Saves labeled feature snapshots to a CSV corpus and lets you tune the
     label thresholds without restarting.

The actual URL handlers are defined in routes.py.

HOW TO RUN:
-----------
  - From project root:  python app.py
  - By default the app is at:  http://localhost:5000

CONFIGURATION:
--------------
  - Settings come from the .env file and config.py.
  - Local capture needs MediaPipe model files (see FACE_LANDMARKER_MODEL_PATH).
=============================================================================
"""

# ---------------------------------------------------------------------------
# Step 1: Load environment variables from .env (before anything else)
# ---------------------------------------------------------------------------
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

# ---------------------------------------------------------------------------
# Step 2: Import the web framework and our own modules
# ---------------------------------------------------------------------------
import logging

from flask import Flask
from flask_cors import CORS
from flask_compress import Compress

from routes import register_routes
from nmf import label_rules
import config

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# Step 3: Warn the user if model files are missing, load label thresholds
# ---------------------------------------------------------------------------
config.warn_missing_config()
label_rules.load_rules()


def create_app() -> Flask:
    """
    Create and configure the Flask application (the web server).

    What it does:
      - Enables CORS so a browser page on another origin can push landmarks
        and poll state.
      - Enables compression for the JSON responses.
      - Registers all URL routes (/nmf/*, /config/*) by calling register_routes(app).

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    # Allow the browser to call our API from another origin.
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Compress responses (gzip) when the client supports it.
    Compress(app)

    register_routes(app)

    return app


# ---------------------------------------------------------------------------
# Create the one global Flask application
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Run the server when this file is executed directly (e.g. "python app.py")
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    # FLASK_DEBUG=true: Flask dev server with auto-reload.
    # Otherwise: Waitress with 6 threads (capture thread + concurrent pollers).
    if config.FLASK_DEBUG:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=True
        )
    else:
        import waitress
        print(f"NMF Live serving on http://{config.FLASK_HOST}:{config.FLASK_PORT}")
        waitress.serve(app, host=config.FLASK_HOST, port=config.FLASK_PORT, threads=6)
