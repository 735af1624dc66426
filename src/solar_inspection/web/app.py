"""
Flask web application for the solar inspection engine.

This module provides a JSON API for generating inspection reports, browsing
and pruning the report histories and rendering grid images, plus a SocketIO
channel that streams simulated analysis progress.
"""

import logging
from typing import Any, Callable, Dict, Optional

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, emit

from ..main import InspectionEngine
from ..services.history_store import HistoryItem, HistoryRepository
from ..services.visualization import GridVisualizer

logger = logging.getLogger(__name__)

# Global variables for web app state
engine: Optional[InspectionEngine] = None
socketio: Optional[SocketIO] = None

MAX_PANEL_GRID = 100
BODY_NOT_OBJECT = 'Request body must be a JSON object'


def _parse_grid_size(data: Dict[str, Any], key: str) -> Optional[int]:
    """
    Read an optional grid dimension from a request body.

    Raises:
        ValueError: If the value is not an integer between 1 and MAX_PANEL_GRID
    """
    value = data.get(key)
    if value is None:
        return None
    try:
        size = int(value)
    except (ValueError, TypeError):
        raise ValueError(f"{key} must be a valid integer") from None
    if not (1 <= size <= MAX_PANEL_GRID):
        raise ValueError(f"{key} must be between 1 and {MAX_PANEL_GRID}")
    return size


def _error(message: str, status_code: int = 400):
    return jsonify({'status': 'error', 'message': message}), status_code


def _request_body() -> Dict[str, Any]:
    """
    Read the optional JSON object body of the current request.

    Raises:
        ValueError: If the body is valid JSON but not an object
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(BODY_NOT_OBJECT)
    return data


def create_app(inspection_engine: InspectionEngine) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        inspection_engine: Engine instance serving all requests

    Returns:
        Configured Flask application
    """
    global engine, socketio

    app = Flask(__name__)
    app.config['SECRET_KEY'] = 'solar_inspection_secret_key'

    # Initialize SocketIO for progress streaming
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")

    engine = inspection_engine

    _register_routes(app)
    _register_history_routes(
        app, '/api/history', 'analysis',
        lambda: engine.analysis_history, lambda item: engine.render_analysis_grid(item),
    )
    _register_history_routes(
        app, '/api/mega-solar/history', 'mega_solar',
        lambda: engine.mega_solar_history, lambda item: engine.render_site_grid(item),
    )
    _register_socketio_events()

    return app


def _register_routes(app: Flask) -> None:
    """Register Flask routes."""

    @app.route('/api/health')
    def health():
        """Liveness check."""
        return jsonify({'status': 'success', 'engine_ready': engine is not None})

    @app.route('/api/inspections', methods=['POST'])
    def create_inspection():
        """Generate a small-site analysis and record it in history."""
        try:
            data = _request_body()
            rows = _parse_grid_size(data, 'rows')
            cols = _parse_grid_size(data, 'cols')
        except ValueError as e:
            return _error(str(e))

        item = engine.run_inspection(
            panel_rows=rows,
            panel_cols=cols,
            project_name=data.get('project_name') or 'Demo Solar Array',
            uploaded_files=data.get('uploaded_files'),
        )
        return jsonify({'status': 'success', 'item': item.to_dict()}), 201

    @app.route('/api/mega-solar', methods=['POST'])
    def create_site_inspection():
        """Generate a mega-solar survey report and record it in history."""
        try:
            data = _request_body()
        except ValueError as e:
            return _error(str(e))
        site_id = data.get('site_id')
        if site_id is not None and not isinstance(site_id, str):
            return _error('site_id must be a string')

        item = engine.run_site_inspection(site_id=site_id, upload_info=data.get('upload_info'))
        return jsonify({'status': 'success', 'item': item.to_dict()}), 201


def _register_history_routes(
    app: Flask,
    prefix: str,
    name: str,
    get_repository: Callable[[], HistoryRepository],
    render: Callable[[HistoryItem], bytes],
) -> None:
    """Register list/get/delete/clear/render routes for one history."""

    def list_history():
        history = get_repository().get_history()
        return jsonify({
            'status': 'success',
            'count': len(history),
            'history': [item.to_dict() for item in history],
        })

    def get_item(item_id: str):
        item = get_repository().get_history_item(item_id)
        if item is None:
            return _error(f'History item {item_id} not found', 404)
        return jsonify({'status': 'success', 'item': item.to_dict()})

    def delete_item(item_id: str):
        if not get_repository().delete_history_item(item_id):
            return _error(f'History item {item_id} not found', 404)
        return jsonify({'status': 'success', 'message': f'Deleted {item_id}'})

    def clear_history():
        get_repository().clear_history()
        return jsonify({'status': 'success', 'message': 'History cleared'})

    def render_grid(item_id: str):
        item = get_repository().get_history_item(item_id)
        if item is None:
            return _error(f'History item {item_id} not found', 404)
        try:
            image = GridVisualizer.to_data_uri(render(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Cannot render history item {item_id}: {e}")
            return _error(f'History item {item_id} cannot be rendered', 422)
        return jsonify({'status': 'success', 'image': image})

    app.add_url_rule(prefix, f'{name}_list_history', list_history, methods=['GET'])
    app.add_url_rule(f'{prefix}/<item_id>', f'{name}_get_item', get_item, methods=['GET'])
    app.add_url_rule(f'{prefix}/<item_id>', f'{name}_delete_item', delete_item, methods=['DELETE'])
    app.add_url_rule(f'{prefix}/clear', f'{name}_clear_history', clear_history, methods=['POST'])
    app.add_url_rule(f'{prefix}/<item_id>/grid', f'{name}_render_grid', render_grid, methods=['GET'])


def _register_socketio_events() -> None:
    """Register SocketIO event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle client connection."""
        logger.info(f"Client connected: {request.sid}")

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Handle client disconnection."""
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on('start_analysis')
    def handle_start_analysis(data=None):
        """Run a simulated analysis, streaming progress to the requesting client."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            emit('analysis_error', {'message': BODY_NOT_OBJECT})
            return
        kind = data.get('kind', 'analysis')

        def on_progress(progress: int, message: str) -> None:
            emit('analysis_progress', {'kind': kind, 'progress': progress, 'message': message})

        if kind == 'analysis':
            try:
                rows = _parse_grid_size(data, 'rows')
                cols = _parse_grid_size(data, 'cols')
            except ValueError as e:
                emit('analysis_error', {'message': str(e)})
                return
            item = engine.run_inspection(rows, cols, on_progress=on_progress)
        elif kind == 'mega-solar':
            item = engine.run_site_inspection(data.get('site_id'), on_progress=on_progress)
        else:
            emit('analysis_error', {'message': f'Unknown analysis kind: {kind}'})
            return

        emit('analysis_complete', {'kind': kind, 'item': item.to_dict()})
