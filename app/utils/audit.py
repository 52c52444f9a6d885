"""
审计日志工具模块
后台每次写操作（文章 / 画廊 / 账号 / 登录）留一条记录
"""
import json

from flask import request
from flask_login import current_user

from app.extensions import db
from app.models.sys import AuditLog


def client_ip():
    """部署在反向代理后面时取 X-Forwarded-For 的第一个地址"""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def log_action(module, action, details=None):
    """
    记录审计日志，未登录的请求不记录
    :param module: 模块名称 (如 'auth', 'article', 'gallery')
    :param action: 操作名称 (如 'login_success', 'create', 'delete')
    :param details: 详细信息 (dict)
    """
    if not current_user.is_authenticated:
        return
    db.session.add(AuditLog(
        user_id=current_user.id,
        username=current_user.username,
        module=module,
        action=action,
        ip_address=client_ip(),
        details=json.dumps(details, ensure_ascii=False, default=str) if details else None,
    ))
    db.session.commit()
