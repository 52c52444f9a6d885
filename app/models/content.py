import re
from urllib.parse import quote

from app.extensions import db
from .base import BaseModel

# 与浏览器 encodeURIComponent 保持一致的保留字符
_HREF_SAFE = "-_.!~*'()"


def slugify_title(title):
    """标题 -> /article/<slug>：空白转连字符、小写、URL 编码"""
    slug = re.sub(r'\s+', '-', title.strip()).lower()
    return '/article/' + quote(slug, safe=_HREF_SAFE)


class Article(BaseModel):
    """文章：封面图 + 有序内容块，每个内容块可带一张图片"""
    __tablename__ = 'cms_articles'

    title = db.Column(db.String(256), nullable=False, default='')
    description = db.Column(db.Text, nullable=False, default='')
    author = db.Column(db.String(128), default='')
    date = db.Column(db.String(32), default='', index=True)  # YYYY-MM-DD
    image = db.Column(db.String(512), default='')  # 封面交付 URL
    contents = db.Column(db.JSON, default=list)  # [{'image': url, 'text': str}, ...]
    href = db.Column(db.String(512), index=True)

    @classmethod
    def build_href(cls, title, exclude_id=None):
        """
        由标题生成 href；与其他文章重复时追加 -2、-3 ...
        """
        base = slugify_title(title)
        href, n = base, 1
        while True:
            query = cls.query.filter_by(href=href)
            if exclude_id is not None:
                query = query.filter(cls.id != exclude_id)
            if query.first() is None:
                return href
            n += 1
            href = f'{base}-{n}'

    def apply(self, data):
        """整文档替换：用校验后的数据覆盖全部可写字段，并重算 href"""
        self.title = data['title']
        self.description = data['description']
        self.author = data['author']
        self.date = data['date']
        self.image = data['image']
        self.contents = [dict(block) for block in data['contents']]
        self.href = self.build_href(self.title, exclude_id=self.id)
        return self

    def to_document(self):
        """参与图片差异比较的那部分字段"""
        return {'image': self.image or '', 'contents': list(self.contents or [])}

    def __repr__(self):
        return f'<Article {self.id} {self.title!r}>'
