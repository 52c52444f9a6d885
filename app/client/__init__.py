"""后台客户端工具：上传前压缩、上传状态机、HTTP 客户端、文章草稿提交"""
from app.client.compressor import CompressionOptions, CompressionPreset, ImageFile, compress_image
from app.client.upload_state import InvalidTransition, PendingImage, UploadState
from app.client.api_client import BackofficeClient, ClientError
from app.client.article_form import ArticleDraft, ContentDraft, DraftSubmitError, submit_draft
