import logging
import colorlog
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import config
from app.extensions import db, migrate, login_manager, cache, csrf, asset_store
from app.exceptions import ClinicException
from app.utils.converters import GalleryFolderConverter

# 导入 commands 模块，用于注册 CLI 命令
from app import commands


def create_app(config_name='default'):
    """诊所官网后台 应用工厂函数"""
    app = Flask(__name__)

    # 1. 加载配置
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # 2. 配置日志（先于扩展，扩展初始化时会写日志）
    configure_logging(app)

    # 3. 初始化扩展
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cache.init_app(app)
    csrf.init_app(app)
    asset_store.init_app(app)

    # 4. 注册蓝图 (Blueprints)
    app.url_map.converters['gallery_folder'] = GalleryFolderConverter
    register_blueprints(app)

    # 5. 注册全局错误处理
    register_error_handlers(app)

    # 6. 注册 CLI 命令
    register_commands(app)

    # 7. 生产环境自动建表
    auto_init_database(app)

    return app


def auto_init_database(app):
    """生产环境自动初始化数据库表"""
    import os
    flask_env = os.environ.get('FLASK_ENV', '')
    if flask_env == 'production' or os.environ.get('DATABASE_URL'):
        with app.app_context():
            try:
                from sqlalchemy import inspect
                from app import models  # noqa: F401 确保所有模型已注册
                inspector = inspect(db.engine)
                if 'cms_articles' not in inspector.get_table_names():
                    app.logger.info('🚀 首次启动，正在创建数据库表...')
                    db.create_all()
                    app.logger.info('✅ 数据库初始化完成！请运行 flask create-admin 创建管理员')
            except Exception as e:
                app.logger.exception(f'❌ 数据库初始化错误: {e}')


def register_blueprints(app):
    """注册所有业务模块蓝图"""
    # 后台登录
    from app.blueprints.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/admin')

    # 后台账号管理
    from app.blueprints.admin_user import admin_user_bp
    app.register_blueprint(admin_user_bp, url_prefix='/api/admin-user')

    # 文章
    from app.blueprints.article import article_bp
    app.register_blueprint(article_bp, url_prefix='/api/article')

    # 单图上传（文章图片 / 头像）
    from app.blueprints.upload import upload_bp
    app.register_blueprint(upload_bp, url_prefix='/api/upload')

    # 画廊 (about / promotion / review)
    from app.blueprints.gallery import gallery_bp
    app.register_blueprint(gallery_bp, url_prefix='/api/cloudinary')


def register_error_handlers(app):
    """所有错误在边界处统一转换为 {error: message} JSON"""

    @app.errorhandler(ClinicException)
    def handle_clinic_exception(e):
        if e.code >= 500:
            app.logger.error(f'❌ {e.message}: {e.__cause__ or e}')
        return jsonify(e.to_dict()), e.code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def internal_server_error(e):
        db.session.rollback()
        app.logger.exception(f'❌ 未处理异常: {e}')
        return jsonify({'error': 'Internal Server Error'}), 500


def register_commands(app):
    """注册 Flask CLI 命令"""
    app.cli.add_command(commands.status)
    app.cli.add_command(commands.create_admin)
    app.cli.add_command(commands.seed_articles)
    app.cli.add_command(commands.assets)


def configure_logging(app):
    """配置彩色控制台日志，提升开发体验"""
    if app.debug:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)

        formatter = colorlog.ColoredFormatter(
            "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            reset=True,
            log_colors={
                'DEBUG':    'cyan',
                'INFO':     'green',
                'WARNING':  'yellow',
                'ERROR':    'red',
                'CRITICAL': 'red,bg_white',
            },
            secondary_log_colors={},
            style='%'
        )
        handler.setFormatter(formatter)
        app.logger.addHandler(handler)
        app.logger.setLevel(logging.INFO)