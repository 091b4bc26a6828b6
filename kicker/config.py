import os


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')
    
    # Database
    DATABASE_URL = os.getenv('DATABASE_URL')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    
    # Auth sessions
    AUTH_COOKIE_NAME = os.getenv('AUTH_COOKIE_NAME', 'kicker_session')
    AUTH_COOKIE_SECURE = False
    SESSION_LIFETIME_DAYS = int(os.getenv('SESSION_LIFETIME_DAYS', '30'))
    
    # Club logos (TheSportsDB)
    SPORTSDB_API_KEY = os.getenv('SPORTSDB_API_KEY', '123')
    SPORTSDB_BASE_URL = os.getenv('SPORTSDB_BASE_URL', 'https://www.thesportsdb.com/api/v1/json')
    CLUB_LOGO_CACHE_DAYS = int(os.getenv('CLUB_LOGO_CACHE_DAYS', '30'))
    CLUB_LOGOS_FILE = os.getenv('CLUB_LOGOS_FILE')
    
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///kicker.db')


class ProductionConfig(Config):
    DEBUG = False
    AUTH_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    CLUB_LOGOS_FILE = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
