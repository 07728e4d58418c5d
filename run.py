"""Development server entry point.

Listens on $HOST:$PORT (defaults 0.0.0.0:5000).
"""

import os

from wsgi import app


if __name__ == '__main__':
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    app.logger.info('Server running on http://localhost:%d', port)
    app.run(host=host, port=port)
