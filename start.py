from flask import Flask
import logging
import os
import sys

import context

from pages import pages_blueprint
from services.olog import olog_blueprint

logger = logging.getLogger(__name__)


def create_app(client=None, attachmentstore=None, producer=None):
    """
    Initialize the application. Use gunicorn 'start:create_app()'.
    The arguments are there for tests to inject the stores.
    """
    app = Flask("olog")
    app.debug = os.environ.get('DEBUG', "False").lower() in ["true", "1", "yes"]
    app.config['MAX_CONTENT_LENGTH'] = int(context.MAX_ATTACHMENT_SIZE) * 10

    if app.debug:
        print("Sending all debug messages to the console")
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        logging.getLogger('kafka').setLevel(logging.INFO)
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        ch.setFormatter(formatter)
        root.addHandler(ch)

    # Register routes.
    app.register_blueprint(pages_blueprint)
    app.register_blueprint(olog_blueprint)

    context.init_app(app, client=client, attachmentstore=attachmentstore, producer=producer)

    logger.info("Server initialization complete")
    return app


if __name__ == '__main__':
    print("Please use gunicorn for development as well; for example, gunicorn 'start:create_app()'")
    sys.exit(-1)
