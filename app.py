#!/usr/bin/env python3
"""
DXF nesting quote service - Flask application.

Run with:
    python app.py
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify

from deployment_config import DeploymentConfig
from error_handler import error_handler
from nesting_api import register_nesting_api

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(config_object=DeploymentConfig):
    """Console logging, plus a rotating log file unless LOG_FILE is None"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if config_object.LOG_FILE:
        handlers.append(RotatingFileHandler(config_object.LOG_FILE,
                                            maxBytes=config_object.LOG_MAX_SIZE,
                                            backupCount=config_object.LOG_BACKUP_COUNT))

    logging.basicConfig(
        level=getattr(logging, str(config_object.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def create_app(config_object=DeploymentConfig) -> Flask:
    configure_logging(config_object)

    app = Flask(__name__)
    app.config.from_object(config_object)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'healthy',
            'errors': error_handler.get_error_stats()['total_errors'],
        })

    register_nesting_api(app)
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=DeploymentConfig.DEBUG, host=DeploymentConfig.HOST, port=DeploymentConfig.PORT)
