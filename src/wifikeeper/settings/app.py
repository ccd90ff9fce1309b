"""
Flask settings UI for choosing the target adapter and network.
Also exposes live status and a manual "connect now" action.
Includes CSRF protections and server-side validation.
"""

import logging
import os
from flask import Flask, render_template, request, jsonify
from itsdangerous import URLSafeTimedSerializer, BadData

from wifikeeper.config import save_config
from wifikeeper.connection.context import TargetConfig
from wifikeeper.wifi.adapter import ExecutionError

logger = logging.getLogger(__name__)

MAX_SSID_LENGTH = 32


def create_app(
        context,
        command_adapter,
        poller=None,
        config_path: str | None = None) -> Flask:
    """
    Create and configure the settings application.

    Args:
        context: ConnectorContext receiving published configuration
        command_adapter: NetworkCommandAdapter used to populate the selectors
        poller: Poller used for manual connect (optional)
        config_path: Where settings are persisted (default: standard location)

    Returns:
        Configured Flask app
    """
    app = Flask(
        __name__,
        template_folder=os.path.join(os.path.dirname(__file__), 'templates')
    )

    app.config['SECRET_KEY'] = os.environ.get(
        'SECRET_KEY', os.urandom(24).hex())
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Strict'

    serializer = URLSafeTimedSerializer(app.config['SECRET_KEY'])

    app.context = context
    app.command_adapter = command_adapter
    app.poller = poller
    app.config_path = config_path

    @app.before_request
    def initialize_session():
        """Initialize CSRF token in session."""
        from flask import session
        if 'csrf_token' not in session:
            session['csrf_token'] = serializer.dumps(
                {'nonce': os.urandom(16).hex()})

    @app.context_processor
    def inject_csrf_token():
        from flask import session
        return {'csrf_token': session.get('csrf_token', '')}

    def verify_csrf_token(token: str) -> bool:
        try:
            serializer.loads(token, max_age=3600)
            return True
        except BadData:
            return False

    def csrf_failure(endpoint: str):
        logger.warning(f"CSRF token verification failed for {endpoint}")
        return jsonify({'error': 'Invalid CSRF token'}), 403

    @app.route('/', methods=['GET'])
    def index():
        """Serve settings page."""
        config = app.context.get_config()
        state, message = app.context.snapshot()
        return render_template(
            'index.html',
            config=config,
            state=state.value,
            message=message)

    @app.route('/api/adapters', methods=['GET'])
    def adapters():
        try:
            found = app.command_adapter.get_adapters()
        except ExecutionError as e:
            logger.error(f"Adapter enumeration failed: {e}")
            return jsonify({'error': 'Could not list adapters'}), 500
        return jsonify({'adapters': [
            {'name': a.name, 'state': a.state} for a in found]})

    @app.route('/api/profiles', methods=['GET'])
    def profiles():
        try:
            saved = app.command_adapter.get_saved_profiles()
        except ExecutionError as e:
            logger.error(f"Profile enumeration failed: {e}")
            return jsonify({'error': 'Could not list saved networks'}), 500
        return jsonify({'profiles': saved})

    @app.route('/api/networks', methods=['GET'])
    def networks():
        adapter_name = request.args.get('adapter', '').strip()
        try:
            visible = app.command_adapter.scan_networks(adapter_name)
        except ExecutionError as e:
            logger.error(f"Network scan failed: {e}")
            return jsonify({'error': 'Scan failed'}), 500
        return jsonify({'networks': [n.ssid for n in visible]})

    @app.route('/api/status', methods=['GET'])
    def status():
        """
        Report the state machine's view plus the live adapter status.

        The live part is omitted when the status query fails.
        """
        config = app.context.get_config()
        state, message = app.context.snapshot()
        payload = {
            'state': state.value,
            'message': message,
            'selected_adapter': config.selected_adapter,
            'selected_network': config.selected_network,
            'poll_interval': config.poll_interval_seconds,
        }
        try:
            live = app.command_adapter.get_connection_status(
                config.selected_adapter)
            payload['live'] = {
                'connected': live.connected,
                'ssid': live.ssid,
                'adapter': live.adapter_name,
                'signal': live.signal_strength,
                'on_target': live.is_connected_to(config.selected_network),
            }
        except ExecutionError as e:
            logger.warning(f"Live status unavailable: {e}")
            payload['live'] = None
        return jsonify(payload)

    @app.route('/api/settings', methods=['POST'])
    def settings():
        """
        Validate, persist and publish new settings.

        Expected JSON:
            {
                "selected_adapter": "Wi-Fi",
                "selected_network": "HomeNet",
                "poll_interval": 5,
                "csrf_token": "token"
            }
        """
        data = request.get_json(silent=True) or {}

        csrf_token = data.get('csrf_token')
        if not csrf_token or not verify_csrf_token(csrf_token):
            return csrf_failure('/api/settings')

        adapter_name = str(data.get('selected_adapter') or '').strip()
        network = str(data.get('selected_network') or '').strip()
        interval = data.get('poll_interval', 5)

        if len(network) > MAX_SSID_LENGTH:
            logger.warning(f"SSID too long: {len(network)} characters")
            return jsonify(
                {'error': 'SSID must be 32 characters or less'}), 400

        if isinstance(interval, bool) or not isinstance(interval, int) \
                or interval <= 0:
            logger.warning(f"Invalid poll interval: {interval!r}")
            return jsonify(
                {'error': 'Poll interval must be a positive integer'}), 400

        config = TargetConfig(
            selected_adapter=adapter_name,
            selected_network=network,
            poll_interval_seconds=interval)

        try:
            save_config(config, app.config_path)
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")
            return jsonify({'error': f'Error: {e}'}), 500

        app.context.publish_config(config)
        return jsonify({
            'success': True,
            'message': 'Settings saved successfully!'
        })

    @app.route('/api/connect', methods=['POST'])
    def connect():
        data = request.get_json(silent=True) or {}

        csrf_token = data.get('csrf_token')
        if not csrf_token or not verify_csrf_token(csrf_token):
            return csrf_failure('/api/connect')

        if app.poller is None:
            return jsonify({'error': 'Manual connect not available'}), 503

        app.poller.trigger()
        return jsonify({'success': True}), 202

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint."""
        return jsonify({'status': 'ok'})

    return app
