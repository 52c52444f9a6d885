# 按照依赖顺序导入
from .base import BaseModel
from .auth import AdminUser
from .content import Article
from .asset import PendingAssetDeletion
from .sys import AuditLog
