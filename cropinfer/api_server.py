#!/usr/bin/env python3
"""
Region-to-Tensor Inference API Server
The browser (or any host) forwards uploads, layout and pointer events here; the
pipeline state for each user lives in a PipelineContext keyed by session id.
"""

import os
import logging
import asyncio
import uuid
from io import BytesIO
from typing import Callable, Dict, Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .models.inference_engine import InferenceEngine
from .pipeline.orchestrator import DISPLAY, PREPROCESSED, RESULT, InferFn, PipelineContext
from .services.image_service import ImageService

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "50")) * 1024 * 1024

image_service = ImageService()


def default_infer() -> Optional[InferFn]:
    """Build the model call from MODEL_PATH; the model itself is loaded on first use."""
    model_path = os.getenv("MODEL_PATH")
    if not model_path:
        return None

    async def infer(values):
        engine = InferenceEngine(model_path)
        return await engine.infer_async(values)

    return infer


def create_app(infer_factory: Callable[[], Optional[InferFn]] = default_infer) -> Flask:
    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend communication
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

    # Session storage for pipeline state
    sessions: Dict[str, PipelineContext] = {}
    app.config['SESSIONS'] = sessions

    def get_or_create_session(session_id: str = None):
        """Get existing session or create new one."""
        if session_id is None:
            session_id = str(uuid.uuid4())
        if session_id not in sessions:
            sessions[session_id] = PipelineContext(infer_factory())
        return session_id, sessions[session_id]

    def require_session():
        payload = request.get_json(silent=True) or {}
        session_id = payload.get('session_id') or request.args.get('session_id')
        if not session_id or session_id not in sessions:
            return None, None, payload
        return session_id, sessions[session_id], payload

    def state_response(session_id: str, ctx: PipelineContext, ok: bool = True, code: int = 200,
                       extra: Optional[dict] = None):
        body = {
            'success': ok,
            'session_id': session_id,
            'status': {'message': ctx.status.message, 'kind': ctx.status.kind},
            'image_loaded': ctx.image is not None,
            'display_size': list(ctx.display_size) if ctx.display_size else None,
            'inference_enabled': ctx.inference_enabled,
            'has_preprocessed': ctx.preprocessed is not None,
            'has_result': ctx.result is not None,
        }
        if ctx.image is not None:
            body['image_size'] = [ctx.image.width, ctx.image.height]
        if extra:
            body.update(extra)
        return jsonify(body), code

    def invalid_session():
        return jsonify({'success': False, 'message': 'Invalid session'}), 400

    @app.route('/api/image', methods=['POST'])
    def upload_image():
        """Load an image into a (new or existing) session."""
        session_id, ctx = get_or_create_session(request.form.get('session_id'))
        if 'image' not in request.files:
            return jsonify({'success': False, 'session_id': session_id,
                            'message': 'No image provided'}), 400

        file = request.files['image']
        ok = asyncio.run(ctx.load_image(file.read(), file.mimetype))
        return state_response(session_id, ctx, ok, 200 if ok else 400)

    @app.route('/api/surface', methods=['POST'])
    def surface_ready():
        """Host signals that the display container has its final width."""
        session_id, ctx, payload = require_session()
        if ctx is None:
            return invalid_session()
        try:
            container_width = float(payload['container_width'])
        except (KeyError, TypeError, ValueError):
            return jsonify({'success': False, 'message': 'container_width is required'}), 400
        ok = ctx.surface_ready(container_width)
        return state_response(session_id, ctx, ok, 200 if ok else 400)

    def _point(payload):
        return float(payload['x']), float(payload['y'])

    @app.route('/api/selection/<phase>', methods=['POST'])
    def selection(phase):
        session_id, ctx, payload = require_session()
        if ctx is None:
            return invalid_session()
        if ctx.image is None:
            return jsonify({'success': False, 'message': 'No image loaded'}), 400
        try:
            if phase == 'start':
                ctx.begin_selection(*_point(payload))
                committed = False
            elif phase == 'move':
                ctx.move_selection(*_point(payload))
                committed = False
            elif phase == 'end':
                if 'x' in payload and 'y' in payload:
                    ctx.move_selection(*_point(payload))
                committed = ctx.end_selection()
            else:
                return jsonify({'success': False, 'message': f'Unknown selection phase: {phase}'}), 404
        except (KeyError, TypeError, ValueError):
            return jsonify({'success': False, 'message': 'x and y are required'}), 400

        return state_response(session_id, ctx, extra={'committed': committed})

    @app.route('/api/inference', methods=['POST'])
    def inference():
        session_id, ctx, _ = require_session()
        if ctx is None:
            return invalid_session()
        if ctx.tensor is None:
            return jsonify({'success': False, 'message': 'Nothing to infer: select a region first'}), 400
        if ctx.inference_in_flight:
            return jsonify({'success': False, 'message': 'Inference already running'}), 409

        rendered = asyncio.run(ctx.run_inference())
        return state_response(session_id, ctx, rendered is not None, 200 if rendered is not None else 400)

    @app.route('/api/reset', methods=['POST'])
    def reset():
        session_id, ctx, _ = require_session()
        if ctx is None:
            return invalid_session()
        ctx.reset()
        return state_response(session_id, ctx)

    @app.route('/api/surface/<name>', methods=['GET'])
    def serve_surface(name):
        """Serve one of the three output surfaces as PNG."""
        session_id, ctx, _ = require_session()
        if ctx is None:
            return invalid_session()
        if name not in (DISPLAY, PREPROCESSED, RESULT):
            return jsonify({'error': f'Unknown surface: {name}'}), 404
        pixels = ctx.surfaces.get(name)
        if pixels is None:
            return jsonify({'error': f'Surface {name} is empty'}), 404
        png = image_service.image_repository.encode_png(pixels)
        return send_file(BytesIO(png), mimetype='image/png')

    @app.route('/api/tensor', methods=['GET'])
    def tensor():
        session_id, ctx, _ = require_session()
        if ctx is None:
            return invalid_session()
        if ctx.tensor is None:
            return jsonify({'error': 'No tensor available'}), 404
        return jsonify({'session_id': session_id, 'length': len(ctx.tensor),
                        'values': ctx.tensor.values.tolist()})

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'message': 'Region-to-Tensor Inference API is running',
            'active_sessions': len(sessions)
        })

    @app.route('/api/clear-session', methods=['POST'])
    def clear_session():
        """Clear a session and free memory."""
        payload = request.get_json(silent=True) or {}
        session_id = payload.get('session_id')
        if session_id and session_id in sessions:
            del sessions[session_id]
            return jsonify({'success': True, 'message': 'Session cleared'})
        return jsonify({'success': False, 'message': 'Session not found'})

    @app.errorhandler(413)
    def too_large(e):
        """Handle file too large error."""
        return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413

    @app.errorhandler(500)
    def internal_error(e):
        """Handle internal server error."""
        logger.error(f"Internal server error: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


def main():
    app = create_app()
    port = int(os.getenv("API_SERVER_PORT", "5002"))
    logger.info(f"Starting Region-to-Tensor Inference API on port {port}")
    logger.info(f"Model: {os.getenv('MODEL_PATH') or 'none configured'}")
    # One request at a time keeps each session's event sequence ordered.
    app.run(host='0.0.0.0', port=port, threaded=False)


if __name__ == '__main__':
    main()
