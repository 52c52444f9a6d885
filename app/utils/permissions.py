"""
权限控制工具
后台写接口统一通过这里的装饰器校验登录态与角色，图片流水线本身不做凭证检查
"""
from functools import wraps
from flask_login import current_user

from app.exceptions import AuthenticationRequired, PermissionDenied

# 可以修改内容（文章 / 图片）的角色
EDITOR_ROLES = ('superadmin', 'admin', 'operator')
# 可以管理后台账号的角色
MANAGER_ROLES = ('superadmin', 'admin')


def role_required(*roles):
    """
    角色检查装饰器

    用法:
        @role_required('superadmin', 'admin')
        def delete_user(id):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthenticationRequired()
            if current_user.role not in roles:
                raise PermissionDenied()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """
    后台写权限装饰器
    已登录且非 viewer 的账号才能访问
    """
    return role_required(*EDITOR_ROLES)(f)
