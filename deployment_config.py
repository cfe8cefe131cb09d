"""
Deployment Configuration
Server, upload, logging and nesting-worker settings read from the environment
"""

import os


class DeploymentConfig:
    """Production deployment configuration"""

    # Server Configuration
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', 5000))
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'

    # File Upload Configuration
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024  # 20MB max DXF size
    ALLOWED_EXTENSIONS = {'dxf'}

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_MAX_SIZE = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # Nesting Configuration
    MAX_CONCURRENT_NESTING = int(os.environ.get('MAX_CONCURRENT_NESTING', 4))
    MAX_PARTS_PER_FILE = int(os.environ.get('MAX_PARTS_PER_FILE', 500))
    NESTING_TIMEOUT_SECONDS = float(os.environ.get('NESTING_TIMEOUT_SECONDS', 30))

    @classmethod
    def allowed_file(cls, filename: str) -> bool:
        return '.' in filename and filename.rsplit('.', 1)[1].lower() in cls.ALLOWED_EXTENSIONS


class UnitTestConfig(DeploymentConfig):
    """Configuration used by the test suite"""
    TESTING = True
    LOG_FILE = None
    MAX_CONCURRENT_NESTING = 2
    NESTING_TIMEOUT_SECONDS = 10
