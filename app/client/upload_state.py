"""
待上传图片的状态机

idle -> compressing -> uploading -> done
                 \\            \\
                  +-> error <--+
error -> idle（重试时保留已压缩的字节，不需要重新选择文件）
"""
import mimetypes
from enum import Enum

from app.client.compressor import CompressionPreset, ImageFile, compress_image


class UploadState(str, Enum):
    IDLE = 'idle'
    COMPRESSING = 'compressing'
    UPLOADING = 'uploading'
    DONE = 'done'
    ERROR = 'error'


_TRANSITIONS = {
    UploadState.IDLE: {UploadState.COMPRESSING, UploadState.UPLOADING},
    UploadState.COMPRESSING: {UploadState.UPLOADING, UploadState.ERROR},
    UploadState.UPLOADING: {UploadState.DONE, UploadState.ERROR},
    UploadState.ERROR: {UploadState.IDLE},
    UploadState.DONE: set(),
}


class InvalidTransition(Exception):
    def __init__(self, current, target):
        super().__init__(f'Cannot move from {current.value} to {target.value}')
        self.current = current
        self.target = target


class PendingImage:
    """一张等待上传的本地图片"""

    def __init__(self, data, filename, content_type=None, preset=CompressionPreset.COVER):
        if content_type is None:
            content_type = mimetypes.guess_type(filename)[0] or 'application/octet-stream'
        self.original = ImageFile(data=data, filename=filename, content_type=content_type)
        self.file = self.original
        self.preset = preset
        self.compressed = False
        self.state = UploadState.IDLE
        self.url = None
        self.asset = None
        self.error = None

    def _move(self, target):
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        self.state = target

    @property
    def is_done(self):
        return self.state == UploadState.DONE

    def compress(self):
        """压缩一次；重试时直接复用上次的结果"""
        if self.compressed:
            return self.file
        self._move(UploadState.COMPRESSING)
        self.file = compress_image(self.original, self.preset)
        self.compressed = True
        return self.file

    def start_upload(self):
        self._move(UploadState.UPLOADING)

    def finish(self, asset):
        self._move(UploadState.DONE)
        self.asset = asset
        self.url = asset.get('url') or asset.get('secure_url')

    def fail(self, message):
        self._move(UploadState.ERROR)
        self.error = message

    def reset(self):
        self._move(UploadState.IDLE)
        self.error = None

    def __repr__(self):
        return f'<PendingImage {self.file.filename} {self.state.value}>'
