import re

from app.utils.cloud_storage import ensure_image

# multipart 里内容块图片的字段名: contents[0], contents[1] ...
CONTENT_FILE_KEY = re.compile(r'^contents\[(\d+)\]$')
COVER_FILE_KEY = 'cover'


def replace_extension(filename, ext):
    """把文件名后缀替换为新格式，例如 photo.jpg -> photo.webp"""
    stem = filename.rsplit('.', 1)[0] if filename and '.' in filename else (filename or 'image')
    return f"{stem}.{ext}"


def has_file(file):
    """FileStorage 是否真的带了文件"""
    return bool(file and file.filename and file.filename.strip())


def require_image_files(files):
    """
    校验一组上传文件都是 image/*，任何一个不是就整体 415
    （在发出任何上传之前校验，保证无副作用）
    """
    for f in files:
        ensure_image(f.mimetype)
    return files


def collect_slot_files(files):
    """
    从 request.files 中取出文章图片槽位

    返回: {'cover': FileStorage, 0: FileStorage, 2: FileStorage ...}
    """
    slots = {}
    for key, file in files.items(multi=True):
        if not has_file(file):
            continue
        if key == COVER_FILE_KEY:
            slots['cover'] = file
            continue
        match = CONTENT_FILE_KEY.match(key)
        if match:
            slots[int(match.group(1))] = file
    require_image_files(slots.values())
    return slots
