"""
Flask routes for NMF Live.

Handles detector start/stop, browser-pushed landmark updates, state and
transcript polling, labeled snapshots for the feature corpus, and label
threshold configuration.
"""

from flask import Blueprint, request, jsonify
from services.corpus_store import NothingToSaveError, get_corpus_store
from services.request_tracker import record_poll
from nmf.helpers import build_config_response, parse_order
from nmf.video_source_handler import VideoSourceType
from nmf import label_rules
from typing import Optional
import logging
import config

logger = logging.getLogger(__name__)

# Create a blueprint for better organization
api = Blueprint('api', __name__)

# Global NMF detector instance (singleton).
# NMFDetector is imported lazily in start_nmf_detection.
nmf_detector = None  # type: Optional["NMFDetector"]

SOURCE_TYPE_MAP = {
    "webcam": VideoSourceType.WEBCAM,
    "file": VideoSourceType.FILE,
    "stream": VideoSourceType.STREAM,
    "push": VideoSourceType.PUSH,
}


def register_routes(app) -> None:
    """Attach the api blueprint to the Flask app."""
    app.register_blueprint(api)


def _not_started():
    return jsonify({"error": "NMF detection not started"}), 404


# ============================================================================
# Static Routes
# ============================================================================

@api.route("/favicon.ico")
def favicon():
    """
    Handle favicon requests.

    Returns:
        Response: Empty 204 response
    """
    return "", 204


# ============================================================================
# Configuration Routes
# ============================================================================

@api.route("/config/all", methods=["GET"])
def get_all_config():
    """
    Get all configuration in one endpoint.

    Returns:
        JSON: Pipeline, landmark source, label and corpus settings
    """
    return jsonify(build_config_response())


@api.route("/config/thresholds", methods=["GET", "PUT"])
def thresholds_route():
    """
    GET: Return {label: {feature, direction, enter, exit}} for every primitive label.
    PUT: Update thresholds. Body: {"labels": {"eyebrows-raised": {"enter": 0.12, "exit": 0.10}, ...}}.
         Every entry is validated before any is applied; a running detector is retuned in place.
    """
    if request.method == "GET":
        return jsonify(label_rules.get_thresholds())

    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400
    data = request.get_json(silent=True) or {}
    labels = data.get("labels")
    if not isinstance(labels, dict) or not labels:
        return jsonify({"error": "Missing 'labels'"}), 400

    current = label_rules.get_thresholds()
    updates = {}
    for label, values in labels.items():
        if label not in current:
            return jsonify({"error": f"Unknown label: {label}"}), 400
        if not isinstance(values, dict):
            return jsonify({"error": f"{label}: expected an object with 'enter' and 'exit'"}), 400
        enter = values.get("enter", current[label]["enter"])
        exit_ = values.get("exit", current[label]["exit"])
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (enter, exit_)):
            return jsonify({"error": f"{label}: 'enter' and 'exit' must be numbers"}), 400
        updates[label] = (float(enter), float(exit_))

    # Validate all before applying any
    try:
        for label, (enter, exit_) in updates.items():
            label_rules.check_thresholds(label, enter, exit_)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    for label, (enter, exit_) in updates.items():
        label_rules.set_thresholds(label, enter, exit_)
        if nmf_detector:
            with nmf_detector.lock:
                nmf_detector.pipeline.classifier.set_thresholds(label, enter, exit_)
    logger.info("Thresholds updated: %s", sorted(updates))
    return jsonify(label_rules.get_thresholds())


# ============================================================================
# NMF Detection Routes
# ============================================================================

@api.route("/nmf/start", methods=["POST"])
def start_nmf_detection():
    """
    Start NMF detection.

    Request Body:
        {
            "sourceType": "webcam" | "file" | "stream" | "push",
            "sourcePath": "path or URL for file/stream sources"
        }
    "push" starts no capture; landmarks arrive through POST /nmf/landmarks.

    Returns:
        JSON: {"success": true, "message": "...", "sourceType": "..."}
    """
    global nmf_detector
    # Lazy import: defer loading nmf_detector until first start
    from nmf_detector import NMFDetector

    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    data = request.get_json(silent=True) or {}
    source_type_str = str(data.get("sourceType", "webcam")).lower()
    source_path = data.get("sourcePath")

    source_type = SOURCE_TYPE_MAP.get(source_type_str)
    if not source_type:
        return jsonify({
            "error": f"Invalid sourceType: {source_type_str}. Must be 'webcam', 'file', 'stream', or 'push'"
        }), 400
    if source_type in (VideoSourceType.FILE, VideoSourceType.STREAM) and not source_path:
        return jsonify({"error": f"sourcePath is required for sourceType '{source_type_str}'"}), 400
    if source_type in (VideoSourceType.WEBCAM, VideoSourceType.PUSH):
        source_path = None

    try:
        if nmf_detector:
            nmf_detector.stop_detection()

        nmf_detector = NMFDetector(lightweight_mode=config.LIGHTWEIGHT_MODE)

        if not nmf_detector.start_detection(source_type, source_path):
            nmf_detector = None
            return jsonify({
                "error": "Failed to start detection. Check video source and model files."
            }), 500

        record_poll("start")
        return jsonify({
            "success": True,
            "message": f"NMF detection started from {source_type_str}",
            "sourceType": source_type_str,
            "lightweightMode": nmf_detector.lightweight_mode,
        })

    except Exception as e:
        logger.exception("Failed to start NMF detection")
        nmf_detector = None
        return jsonify({
            "error": "Failed to start NMF detection",
            "details": str(e)
        }), 500


@api.route("/nmf/stop", methods=["POST"])
def stop_nmf_detection():
    """
    Stop NMF detection and drop the detector (smoothing history, flags, transcript).

    Returns:
        JSON: {"success": true, "message": "NMF detection stopped"}
    """
    global nmf_detector

    try:
        if nmf_detector:
            nmf_detector.stop_detection()
            nmf_detector = None
        return jsonify({
            "success": True,
            "message": "NMF detection stopped"
        })

    except Exception as e:
        return jsonify({
            "error": "Failed to stop NMF detection",
            "details": str(e)
        }), 500


@api.route("/nmf/landmarks", methods=["POST"])
def push_landmarks():
    """
    Push one landmark update from a browser-side detector.

    Request Body:
        {
            "stream": "face" | "pose",
            "landmarks": [[x, y, z], ...] | null   (null = nothing detected)
        }

    Returns:
        JSON: The resulting NMF state (see GET /nmf/state)
    """
    if not nmf_detector:
        return _not_started()
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    data = request.get_json(silent=True) or {}
    stream = data.get("stream")
    if stream not in ("face", "pose"):
        return jsonify({"error": "Missing or invalid 'stream' (must be 'face' or 'pose')"}), 400

    try:
        state = nmf_detector.push_landmarks(stream, data.get("landmarks"))
        record_poll("landmarks")
        return jsonify(state.to_dict())
    except Exception as e:
        logger.exception("Failed to process landmarks")
        return jsonify({
            "error": "Failed to process landmarks",
            "details": str(e)
        }), 500


@api.route("/nmf/state", methods=["GET"])
def get_nmf_state():
    """
    Get the current NMF state.

    Returns:
        JSON: {
            "timestamp": 1712345678.9,
            "faceDetected": true,
            "poseDetected": false,
            "features": {"eyeOpenness": 0.071, ...},
            "smoothed": {"eyeOpenness": 0.069, ...},
            "labels": ["eyebrows-raised", "mouth-open", "surprise"],
            "text": "eyebrows raised, mouth open, surprise",
            "summary": ["Eyebrow Raise:   RAISED", ...],
            "fps": 29.7
        }
        Before the first update, faceDetected is false and text is "".
    """
    if not nmf_detector:
        return _not_started()

    record_poll("state")
    try:
        state = nmf_detector.get_current_state()
        if state is None:
            out = {
                "timestamp": None,
                "faceDetected": False,
                "poseDetected": False,
                "features": None,
                "smoothed": None,
                "labels": [],
                "text": "",
                "summary": [],
            }
        else:
            out = state.to_dict()
        out["fps"] = nmf_detector.get_fps()
        out["running"] = nmf_detector.is_running
        return jsonify(out)

    except Exception as e:
        return jsonify({
            "error": "Failed to get NMF state",
            "details": str(e)
        }), 500


@api.route("/nmf/transcript", methods=["GET"])
def get_nmf_transcript():
    """
    Get the label transcript.

    Query:
        order: "oldest" (default) or "newest"

    Returns:
        JSON: {"entries": [{"timestamp": ..., "text": "..."}, ...]}
    """
    try:
        newest_first = parse_order(request.args.get("order"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if not nmf_detector:
        return jsonify({"entries": []})
    record_poll("transcript")
    entries = nmf_detector.get_transcript(newest_first=newest_first)
    return jsonify({"entries": [e.to_dict() for e in entries]})


@api.route("/nmf/snapshot", methods=["POST"])
def save_nmf_snapshot():
    """
    Append the latest smoothed feature vector to the corpus CSV.

    Request Body:
        {"label": "question"}

    Returns:
        JSON: {"success": true, "rowsWritten": 1, "path": "data/nmf_corpus.csv"}
        409 when no feature vector has been computed yet.
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400
    data = request.get_json(silent=True) or {}
    label = data.get("label")
    if not isinstance(label, str) or not label.strip():
        return jsonify({"error": "Missing 'label'"}), 400
    if not nmf_detector:
        return jsonify({"error": "nothing to save"}), 409

    store = get_corpus_store()
    try:
        rows = nmf_detector.save_snapshot(label, store)
    except NothingToSaveError:
        return jsonify({"error": "nothing to save"}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except OSError as e:
        return jsonify({
            "error": "Failed to write corpus",
            "details": str(e)
        }), 500
    return jsonify({"success": True, "rowsWritten": rows, "path": store.path})


@api.route("/nmf/reset", methods=["POST"])
def reset_nmf():
    """
    Clear smoothing history, label flags and transcript without stopping capture.

    Returns:
        JSON: {"success": true}
    """
    if nmf_detector:
        nmf_detector.reset()
    return jsonify({"success": True})
