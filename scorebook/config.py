import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Import engine configuration settings"""
    
    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///scorebook.db')
    
    # Logging settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    
    # Import settings
    # Substituted when a record carries no location. Kept for compatibility with
    # existing datasets even though it is indistinguishable from a real venue
    # named "Unknown".
    DEFAULT_LOCATION = os.getenv('DEFAULT_LOCATION', 'Unknown')
    
    @classmethod
    def get_async_database_url(cls, database_url: str = None) -> str:
        """Get the database URL with an async driver for SQLite"""
        url = database_url or cls.DATABASE_URL
        if url.startswith('sqlite:///'):
            url = url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return url
    
    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if not cls.DEFAULT_LOCATION or not cls.DEFAULT_LOCATION.strip():
            raise ValueError("DEFAULT_LOCATION must not be blank")
