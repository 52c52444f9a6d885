import json
from flask import request, jsonify

from app.blueprints.article import article_bp
from app.exceptions import ValidationError
from app.extensions import cache
from app.services.article_service import ArticleService, ARTICLE_LIST_CACHE_KEY
from app.utils.audit import log_action
from app.utils.file_helper import collect_slot_files
from app.utils.permissions import admin_required


def read_article_request():
    """
    解析文章写入请求

    - application/json: 图片 URL 已由客户端上传好
    - multipart/form-data: payload 字段为 JSON，文件字段 cover / contents[<i>]
    """
    if request.mimetype == 'multipart/form-data':
        try:
            payload = json.loads(request.form.get('payload') or '')
        except ValueError:
            raise ValidationError('Invalid payload')
        return payload, collect_slot_files(request.files)

    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError('Invalid payload')
    return payload, {}


@article_bp.route('', methods=['GET'])
@cache.cached(key_prefix=ARTICLE_LIST_CACHE_KEY)
def index():
    """文章列表（按日期倒序）"""
    return jsonify([a.to_dict() for a in ArticleService.list_articles()])


@article_bp.route('/<int:article_id>', methods=['GET'])
def detail(article_id):
    """文章详情"""
    return jsonify(ArticleService.get_article(article_id).to_dict())


@article_bp.route('/add', methods=['POST'])
@admin_required
def add():
    """创建文章"""
    payload, slot_files = read_article_request()
    article = ArticleService.create_article(payload, slot_files)
    log_action('article', 'create', {'id': article.id, 'title': article.title})
    return jsonify({'message': 'Article created', 'article': article.to_dict()}), 201


@article_bp.route('/<int:article_id>/edit', methods=['PUT'])
@admin_required
def edit(article_id):
    """整文档替换更新"""
    payload, slot_files = read_article_request()
    article = ArticleService.update_article(article_id, payload, slot_files)
    log_action('article', 'update', {'id': article.id})
    return jsonify({'message': 'Article updated successfully', 'article': article.to_dict()})


@article_bp.route('/<int:article_id>/delete', methods=['DELETE', 'POST'])
@admin_required
def delete(article_id):
    """删除文章及其全部图片"""
    result = ArticleService.delete_article(article_id)
    log_action('article', 'delete', {'id': article_id, **result})
    return jsonify({'success': True, 'message': 'Article and images deleted.', **result})
