import os
from dotenv import load_dotenv

# 加载 .env 环境变量
load_dotenv()
basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    """基础配置类"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'hard-to-guess-string'

    # 数据库配置
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_RECORD_QUERIES = True

    # Cloudinary 资源托管配置（CLOUDINARY_URL 优先）
    CLOUDINARY_URL = os.environ.get('CLOUDINARY_URL')
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET')

    # 上传配置：客户端已压缩，这里只是兜底上限
    MAX_CONTENT_LENGTH = 32 * 1024 * 1024
    ASSET_LIST_PAGE_SIZE = int(os.environ.get('ASSET_LIST_PAGE_SIZE', 100))
    ARTICLE_UPLOAD_WORKERS = int(os.environ.get('ARTICLE_UPLOAD_WORKERS', 4))
    ASSET_SWEEP_BATCH = int(os.environ.get('ASSET_SWEEP_BATCH', 100))

    # 缓存配置 (默认使用 SimpleCache，生产环境可改 Redis)
    CACHE_TYPE = "SimpleCache"
    CACHE_DEFAULT_TIMEOUT = 300

    # 登录安全
    LOGIN_MAX_FAILED_ATTEMPTS = 5
    LOGIN_LOCK_MINUTES = 30

    @staticmethod
    def init_app(app):
        pass

class DevelopmentConfig(Config):
    """开发环境配置"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'clinic.db')

    @staticmethod
    def init_app(app):
        # 确保 sqlite 目录存在
        os.makedirs(os.path.join(basedir, 'instance'), exist_ok=True)

class ProductionConfig(Config):
    """生产环境配置"""
    DEBUG = False

    DATABASE_URL = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'clinic_prod.db')
    # PostgreSQL URL 修正（部分托管平台使用 postgres://）
    if DATABASE_URL and DATABASE_URL.startswith('postgres://'):
        DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = DATABASE_URL

    # 安全设置
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    CACHE_TYPE = "NullCache"
    CLOUDINARY_URL = None
    CLOUDINARY_CLOUD_NAME = 'demo'
    CLOUDINARY_API_KEY = 'test-key'
    CLOUDINARY_API_SECRET = 'test-secret'
    ARTICLE_UPLOAD_WORKERS = 2

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
