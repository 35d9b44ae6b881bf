#!/usr/bin/env python3
"""
Family Tree - Flask application for GEDCOM import/export and duplicate detection
"""

import os

from flask import Flask

from family_tree.blueprints.api_gedcom import api_gedcom
from family_tree.blueprints.api_people import api_people
from family_tree.blueprints.api_relationships import api_relationships
from family_tree.commands import register_commands
from family_tree.database import init_app as init_database
from family_tree.error_handlers import register_error_handlers


class Config:
    """Configuration class for Flask app with required environment variables"""

    def __init__(self):
        # Flask configuration
        self.secret_key = self._require_env('SECRET_KEY')

        # Database configuration
        self.sqlalchemy_database_uri = self._require_env('DATABASE_URL')
        self.sqlalchemy_track_modifications = False

        # Service configuration
        self.log_level = os.environ.get('LOG_LEVEL', 'INFO')
        self.duplicate_threshold = int(os.environ.get('DUPLICATE_THRESHOLD', '70'))
        self.max_upload_mb = int(os.environ.get('MAX_UPLOAD_MB', '10'))

    def _require_env(self, var_name: str) -> str:
        """Require environment variable or raise error"""
        value = os.environ.get(var_name)
        if not value:
            raise RuntimeError(f"Required environment variable {var_name} is not set")
        return value

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def create_app(config=None):
    """Application factory"""
    app = Flask(__name__)

    # Initialize configuration
    if config is None:
        config = Config()

    # Set Flask config from our config object
    app.config['SECRET_KEY'] = config.secret_key
    app.config['SQLALCHEMY_DATABASE_URI'] = config.sqlalchemy_database_uri
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = config.sqlalchemy_track_modifications
    app.config['DUPLICATE_THRESHOLD'] = config.duplicate_threshold
    app.config['MAX_CONTENT_LENGTH'] = config.max_content_length
    app.logger.setLevel(config.log_level.upper())

    # Register blueprints
    app.register_blueprint(api_gedcom)
    app.register_blueprint(api_people)
    app.register_blueprint(api_relationships)

    # Initialize database
    init_database(app)

    # Register error handlers and CLI commands
    register_error_handlers(app)
    register_commands(app)

    return app


def main_cli():
    """Development server entry point"""
    app = create_app()
    print("Family Tree API - http://localhost:5000/api")
    app.run(debug=True, host='0.0.0.0', port=5000)


if __name__ == '__main__':
    main_cli()
