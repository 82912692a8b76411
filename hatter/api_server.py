#!/usr/bin/env python3
"""
Hatter API Server
Upload a photo, get it back with a hat on every face. One pipeline per session.
"""

import os
import logging
import uuid
from io import BytesIO
from typing import Callable, Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

from .models.errors import (
    AssetConfigurationError,
    DegenerateLandmarks,
    DetectorUnavailable,
    HatterError,
    NoFaceFound,
    PipelineStateError,
)
from .pipeline.hat_pipeline import HatPipeline
from .services.export_service import ExportService
from .services.image_service import ImageService

logger = logging.getLogger(__name__)

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024


def configure_logging() -> None:
    """Centralized logging configuration for entry points."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )


class ApiSession:
    """One user's pipeline plus the uploaded file's name (for export naming)."""

    def __init__(self, session_id: str, pipeline: HatPipeline):
        self.session_id = session_id
        self.pipeline = pipeline
        self.filename: Optional[str] = None

    def clear(self):
        """Release image and scene."""
        self.pipeline.reset()
        self.filename = None


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def create_app(pipeline_factory: Callable[[], HatPipeline] = HatPipeline) -> Flask:
    """
    Build the Flask app. Models and the prop are loaded lazily by the first
    session's pipeline, then shared process-wide.
    """
    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend communication
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

    image_service = ImageService()
    export_service = ExportService()
    sessions: Dict[str, ApiSession] = {}
    app.config['SESSIONS'] = sessions

    def get_or_create_session(session_id: str = None) -> ApiSession:
        """Get existing session or create new one (preparing its pipeline)."""
        if session_id is None:
            session_id = str(uuid.uuid4())
        if session_id not in sessions:
            pipeline = pipeline_factory()
            pipeline.prepare()
            sessions[session_id] = ApiSession(session_id, pipeline)
        return sessions[session_id]

    def png_response(pixels, download_name: str, as_attachment: bool):
        buffer = BytesIO(export_service.encode_png(pixels))
        return send_file(buffer, mimetype='image/png',
                         as_attachment=as_attachment, download_name=download_name)

    @app.route('/api/hat-image', methods=['POST'])
    def hat_image():
        """Detect faces in the uploaded image and place a hat on each."""
        if 'image' not in request.files:
            return jsonify({'success': False, 'message': 'No image provided'}), 400

        file = request.files['image']
        if file.filename == '' or not allowed_file(file.filename):
            return jsonify({'success': False, 'message': 'Unsupported or missing file'}), 400

        try:
            session = get_or_create_session(request.form.get('session_id'))
        except (AssetConfigurationError, DetectorUnavailable) as e:
            logger.error(f"Pipeline unavailable: {e}")
            return jsonify({'success': False, 'message': 'Face detection is unavailable'}), 503

        # Loading a new image releases the previous session's image and scene.
        session.clear()
        filename = secure_filename(file.filename) or 'image'

        try:
            image = image_service.decode(file.read(), filename)
        except ValueError as e:
            logger.warning(f"Upload {filename} rejected: {e}")
            return jsonify({'success': False, 'session_id': session.session_id,
                            'message': 'File is not a readable image'}), 400

        try:
            scene = session.pipeline.process(image)
        except (NoFaceFound, DegenerateLandmarks) as e:
            logger.info(f"Session {session.session_id}: {type(e).__name__}: {e}")
            return jsonify({
                'success': False,
                'session_id': session.session_id,
                'state': session.pipeline.state.value,
                'error': type(e).__name__,
                'message': 'No faces detected',
            }), 422
        except HatterError as e:
            logger.error(f"Session {session.session_id} failed: {e}")
            return jsonify({'success': False, 'session_id': session.session_id,
                            'state': session.pipeline.state.value,
                            'error': type(e).__name__, 'message': str(e)}), 500
        except Exception as e:
            logger.exception(f"Session {session.session_id}: unexpected error during detection")
            return jsonify({'success': False, 'session_id': session.session_id,
                            'state': session.pipeline.state.value,
                            'error': type(e).__name__,
                            'message': f'Error in face detection: {str(e)}'}), 500

        session.filename = filename
        logger.info(f"Session {session.session_id}: hatted {len(scene.placements)} face(s) in {filename}")
        return jsonify({
            'success': True,
            'session_id': session.session_id,
            'face_count': len(scene.placements),
            'state': session.pipeline.state.value,
            'filename': export_service.export_filename(filename),
        })

    @app.route('/api/result/<session_id>')
    def result(session_id):
        """Inline PNG preview; ?debug=1 adds boxes, landmarks and anchors."""
        session = sessions.get(session_id)
        if session is None:
            return jsonify({'error': 'Session not found'}), 404
        debug_visible = request.args.get('debug', '0').lower() in ('1', 'true', 'yes')
        try:
            pixels = session.pipeline.export(debug_visible=debug_visible)
        except PipelineStateError as e:
            return jsonify({'error': str(e)}), 409
        except HatterError as e:
            logger.error(f"Rendering failed for session {session_id}: {e}")
            return jsonify({'error': 'Rendering failed'}), 500
        return png_response(pixels, export_service.export_filename(session.filename), as_attachment=False)

    @app.route('/api/export/<session_id>')
    def export(session_id):
        """Download the flattened result (never includes debug graphics)."""
        session = sessions.get(session_id)
        if session is None:
            return jsonify({'error': 'Session not found'}), 404
        try:
            pixels = session.pipeline.export(debug_visible=False)
        except PipelineStateError as e:
            return jsonify({'error': str(e)}), 409
        except HatterError as e:
            logger.error(f"Export failed for session {session_id}: {e}")
            return jsonify({'error': 'Rendering failed'}), 500
        return png_response(pixels, export_service.export_filename(session.filename), as_attachment=True)

    @app.route('/api/reset', methods=['POST'])
    def reset():
        """Clear a session and free memory."""
        session_id = (request.get_json(silent=True) or {}).get('session_id')
        if session_id and session_id in sessions:
            sessions.pop(session_id).clear()
            return jsonify({'success': True, 'message': 'Session cleared'})
        return jsonify({'success': False, 'message': 'Session not found'}), 404

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'message': 'Hatter API is running',
            'active_sessions': len(sessions)
        })

    @app.errorhandler(413)
    def too_large(e):
        """Handle file too large error."""
        return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413

    @app.errorhandler(500)
    def internal_error(e):
        """Handle unexpected server errors."""
        logger.error(f"Internal server error: {e}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


def main():
    configure_logging()
    app = create_app()
    port = int(os.getenv("API_SERVER_PORT", "5002"))
    logger.info(f"Starting Hatter API on port {port} (prop: {os.getenv('HAT_IMAGE_PATH', 'assets/santa_hat.webp')})")
    # Sessions live in this process; keep a single worker thread.
    app.run(host='0.0.0.0', port=port, threaded=False)


if __name__ == '__main__':
    main()
