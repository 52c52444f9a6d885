class ClinicException(Exception):
    """后台系统基础异常类，统一转换为 {error: message} 响应"""
    def __init__(self, message, code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['error'] = self.message
        return rv

class ValidationError(ClinicException):
    """请求数据校验失败"""
    def __init__(self, message="Invalid data", payload=None):
        super().__init__(message, code=400, payload=payload)

class AuthenticationRequired(ClinicException):
    """未登录"""
    def __init__(self, message="Unauthorized", payload=None):
        super().__init__(message, code=401, payload=payload)

class PermissionDenied(ClinicException):
    """权限不足"""
    def __init__(self, message="Access denied", payload=None):
        super().__init__(message, code=403, payload=payload)

class NotFound(ClinicException):
    """资源不存在"""
    def __init__(self, message="Not found", payload=None):
        super().__init__(message, code=404, payload=payload)

class Conflict(ClinicException):
    """唯一性冲突（用户名 / 邮箱重复）"""
    def __init__(self, message="Already exists", payload=None):
        super().__init__(message, code=409, payload=payload)

class UnsupportedMediaType(ClinicException):
    """非图片文件"""
    def __init__(self, message="Only image files are allowed", payload=None):
        super().__init__(message, code=415, payload=payload)

class AssetStoreError(ClinicException):
    """资源托管服务调用失败"""
    def __init__(self, message="Asset host request failed", payload=None):
        super().__init__(message, code=500, payload=payload)

class AssetUploadError(AssetStoreError):
    """上传失败，整批操作中止"""
    def __init__(self, message="Upload failed", payload=None):
        super().__init__(message, payload=payload)
