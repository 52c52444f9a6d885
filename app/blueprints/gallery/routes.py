from flask import request, jsonify

from app.blueprints.gallery import gallery_bp
from app.services.gallery_service import GalleryService
from app.utils.audit import log_action
from app.utils.file_helper import has_file, require_image_files
from app.utils.permissions import admin_required


@gallery_bp.route('/<gallery_folder:folder>/list', methods=['GET'])
def list_images(folder):
    """
    画廊图片列表（最新在前）
    ?next=<cursor> 继续翻页；返回 next_cursor 为 null 表示结束
    """
    page = GalleryService.list_page(folder, cursor=request.args.get('next') or None)
    return jsonify(page.to_dict())


@gallery_bp.route('/<gallery_folder:folder>/upload', methods=['POST'])
@admin_required
def upload(folder):
    """上传一组图片 (files[])"""
    files = [f for f in request.files.getlist('files') if has_file(f)]
    require_image_files(files)
    uploaded = GalleryService.upload(folder, files)
    log_action('gallery', 'upload', {'folder': folder.value, 'public_ids': [a.public_id for a in uploaded]})
    return jsonify({'uploaded': [a.to_dict() for a in uploaded]})


@gallery_bp.route('/<gallery_folder:folder>/delete', methods=['POST'])
@admin_required
def delete(folder):
    """删除单个 {public_id} 或一组 {public_ids: []}"""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    result = GalleryService.delete(
        folder,
        public_id=body.get('public_id'),
        public_ids=body.get('public_ids'),
    )
    log_action('gallery', 'delete', {'folder': folder.value, 'result': result})
    return jsonify({'ok': True, 'result': result})
