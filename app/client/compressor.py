"""
客户端图片压缩

上传前在客户端把图片压到目标尺寸 / 体积 / 格式范围内：
1. 按 EXIF 方向摆正
2. 最长边缩到 max_width_or_height 以内
3. 重新编码为目标格式（默认 WebP），质量从 initial_quality 逐步下调
4. 仍超出 max_size_mb 时继续等比缩小

任何失败（损坏文件、不支持的编码）都不抛异常，原样返回输入文件，只记日志。
"""
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from PIL import Image, ImageOps

from app.utils.file_helper import replace_extension

logger = logging.getLogger(__name__)

# 目标 MIME -> (Pillow 格式, 文件后缀)
OUTPUT_FORMATS = {
    'image/webp': ('WEBP', 'webp'),
    'image/jpeg': ('JPEG', 'jpg'),
    'image/png': ('PNG', 'png'),
}

QUALITY_STEP = 10      # 每轮下调的质量
MIN_QUALITY = 40       # 质量下限，再低就改为缩小尺寸
SCALE_STEP = 0.8       # 每轮缩小比例
MAX_SCALE_ROUNDS = 8


@dataclass(frozen=True)
class CompressionOptions:
    max_size_mb: float
    max_width_or_height: int
    target_format: str = 'image/webp'
    initial_quality: float = 1.0  # 0 ~ 1

    @property
    def max_bytes(self):
        return int(self.max_size_mb * 1024 * 1024)


class CompressionPreset(Enum):
    """各用途的压缩参数：封面最宽松，头像最严格"""
    COVER = CompressionOptions(max_size_mb=4, max_width_or_height=3840)
    ABOUT = CompressionOptions(max_size_mb=2, max_width_or_height=1920)
    PROMOTION = CompressionOptions(max_size_mb=1.8, max_width_or_height=1600)
    REVIEW = CompressionOptions(max_size_mb=1.5, max_width_or_height=1200)
    AVATAR = CompressionOptions(max_size_mb=0.5, max_width_or_height=600)


@dataclass
class ImageFile:
    """客户端持有的一份图片数据（纯数据，不依赖任何 UI）"""
    data: bytes
    filename: str
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self):
        return len(self.data)


def _fit(img, max_side):
    w, h = img.size
    if max(w, h) <= max_side:
        return img
    ratio = max_side / max(w, h)
    return img.resize((max(1, int(w * ratio)), max(1, int(h * ratio))), Image.Resampling.LANCZOS)


def _convert_mode(img, fmt):
    """按目标格式调整色彩模式，JPEG 不支持透明通道，需要铺白底"""
    if fmt == 'JPEG' and img.mode not in ('RGB', 'L'):
        if img.mode == 'P':
            img = img.convert('RGBA')
        if 'A' in img.mode:
            bg = Image.new('RGB', img.size, (255, 255, 255))
            bg.paste(img, mask=img.getchannel('A'))
            return bg
        return img.convert('RGB')
    if fmt in ('WEBP', 'PNG') and img.mode not in ('RGB', 'RGBA'):
        has_alpha = 'A' in img.mode or (img.mode == 'P' and 'transparency' in img.info)
        return img.convert('RGBA' if has_alpha else 'RGB')
    return img


def _encode(img, fmt, quality):
    buf = io.BytesIO()
    save_kwargs = {'optimize': True}
    if fmt in ('WEBP', 'JPEG'):
        save_kwargs['quality'] = quality
    if fmt == 'WEBP':
        save_kwargs['method'] = 4
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def _compress(image, options):
    fmt, ext = OUTPUT_FORMATS[options.target_format]

    with Image.open(io.BytesIO(image.data)) as src:
        src.load()
        img = ImageOps.exif_transpose(src)

    img = _convert_mode(_fit(img, options.max_width_or_height), fmt)

    quality = max(1, min(100, int(round(options.initial_quality * 100))))
    data = _encode(img, fmt, quality)
    rounds = 0
    while len(data) > options.max_bytes:
        if fmt != 'PNG' and quality - QUALITY_STEP >= MIN_QUALITY:
            quality -= QUALITY_STEP
        elif rounds < MAX_SCALE_ROUNDS:
            w, h = img.size
            img = img.resize((max(1, int(w * SCALE_STEP)), max(1, int(h * SCALE_STEP))), Image.Resampling.LANCZOS)
            rounds += 1
        else:
            break
        data = _encode(img, fmt, quality)

    logger.info(
        f'Compressed {image.filename}: {image.size:,} -> {len(data):,} bytes, '
        f'{img.size[0]}x{img.size[1]} {fmt} q={quality}'
    )
    return ImageFile(
        data=data,
        filename=replace_extension(image.filename, ext),
        content_type=options.target_format,
        width=img.size[0],
        height=img.size[1],
    )


def compress_image(image, options=CompressionPreset.COVER):
    """
    压缩一张图片

    Args:
        image: ImageFile
        options: CompressionPreset 或 CompressionOptions

    Returns:
        压缩后的新 ImageFile；失败时返回原始 image（同一对象，字节不变）
    """
    if isinstance(options, CompressionPreset):
        options = options.value
    try:
        return _compress(image, options)
    except Exception as e:
        logger.warning(f'Image compression failed for {image.filename}, using original: {e}')
        return image
