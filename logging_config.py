import json
import logging
import time
import uuid
from flask import g, request, has_request_context
from flask_login import current_user

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(request_id)s): %(message)s"

class RequestIdFilter(logging.Filter):
    """Stamps every record with the current request id, '-' outside a request."""

    def filter(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = g.get('request_id', '-') if has_request_context() else '-'
        return True

class JsonLineFormatter(logging.Formatter):
    def format(self, record):
        line = {
            'time': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'request_id': getattr(record, 'request_id', '-'),
            'message': record.getMessage(),
        }
        if record.exc_info:
            line['exception'] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)

def init_logging(app):
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if app.config.get('LOG_FORMAT') == 'json':
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%H:%M:%S'))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    # werkzeug would print a second access line per request
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    access_log = logging.getLogger('studyflow.access')

    @app.before_request
    def start_timer():
        g.request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex[:12]
        g.started = time.perf_counter()

    @app.after_request
    def log_response(response):
        elapsed = (time.perf_counter() - g.get('started', time.perf_counter())) * 1000
        user = current_user.get_id() if current_user.is_authenticated else 'anon'
        access_log.info("%s %s -> %s in %.0fms (user %s)",
                        request.method, request.path, response.status_code, elapsed, user)
        response.headers['X-Request-ID'] = g.get('request_id', '-')
        return response
