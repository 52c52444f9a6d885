from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_caching import Cache
from flask_wtf.csrf import CSRFProtect

from app.utils.cloud_storage import AssetStore

# 初始化扩展对象 (暂不绑定 app)
db = SQLAlchemy()
migrate = Migrate()
cache = Cache()
login_manager = LoginManager()
csrf = CSRFProtect()
asset_store = AssetStore()

login_manager.session_protection = 'strong'


@login_manager.user_loader
def load_user(user_id):
    """Flask-Login 用户加载回调"""
    from app.models import AdminUser
    return db.session.get(AdminUser, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    """JSON API 不做跳转，直接返回 401"""
    return jsonify({'error': 'Unauthorized'}), 401
