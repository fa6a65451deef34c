import os
from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), '.env'))

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-prod'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///makerspace.db'
    JWT_ALGORITHM = 'HS256'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Business Rules Defaults
    ADMIN_ROLE = 'admin'
    DEFAULT_PARTICIPANTS = 1

class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret-key-for-makerspace-booking'

class ProductionConfig(Config):
    DEBUG = False
    # In prod, rely on env vars strictly
