from werkzeug.routing import BaseConverter

from app.utils.cloud_storage import AssetFolder, GALLERY_FOLDERS


class GalleryFolderConverter(BaseConverter):
    """URL 中的画廊文件夹，只匹配 about / promotion / review"""
    regex = '|'.join(f.value for f in GALLERY_FOLDERS)

    def to_python(self, value):
        return AssetFolder(value)

    def to_url(self, value):
        return AssetFolder(value).value
