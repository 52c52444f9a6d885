"""
请求数据验证器
校验失败统一抛出 ValidationError（400），没有任何副作用
"""
import re
from datetime import date

from app.exceptions import ValidationError

ROLES = ('superadmin', 'admin', 'operator', 'viewer')

EMAIL_PATTERN = re.compile(r'^\S+@\S+\.\S+$')


def _text(value):
    return value.strip() if isinstance(value, str) else ''


def validate_article_payload(data):
    """
    校验并规范化文章写入数据（整文档替换语义）

    返回只包含可持久化字段的新字典，contents 中每项只保留 image / text。
    """
    if not isinstance(data, dict):
        raise ValidationError('Invalid payload')

    title = _text(data.get('title'))
    description = _text(data.get('description'))
    if not title or not description:
        raise ValidationError('Title and description are required')

    contents = data.get('contents', [])
    if contents is None:
        contents = []
    if not isinstance(contents, list):
        raise ValidationError('Contents must be an array')

    blocks = []
    for block in contents:
        if not isinstance(block, dict):
            raise ValidationError('Each content block must be an object')
        blocks.append({
            'image': _text(block.get('image')),
            'text': block.get('text') if isinstance(block.get('text'), str) else '',
        })

    return {
        'title': title,
        'description': description,
        'author': _text(data.get('author')),
        'date': _text(data.get('date')) or date.today().isoformat(),
        'image': _text(data.get('image')),
        'contents': blocks,
    }


def validate_username(username):
    """用户名至少 3 个字符"""
    username = _text(username)
    if len(username) < 3:
        raise ValidationError('Username is required (min 3 chars)')
    return username


def validate_email(email):
    """邮箱可为空，非空时校验格式并转小写"""
    email = _text(email).lower()
    if email and not EMAIL_PATTERN.match(email):
        raise ValidationError('Invalid email format')
    return email or None


def validate_password(password, min_length=6):
    """密码长度校验"""
    if not isinstance(password, str) or len(password.strip()) < min_length:
        raise ValidationError(f'Password must be at least {min_length} characters')
    return password


def validate_role(role):
    """角色必须是预定义值之一"""
    role = _text(role) or 'viewer'
    if role not in ROLES:
        raise ValidationError(f'Role must be one of: {", ".join(ROLES)}')
    return role
