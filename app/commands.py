import json
import click
from flask import current_app
from flask.cli import with_appcontext
from app.extensions import db, cache
from app.models.auth import AdminUser
from app.models.content import Article
from app.models.asset import PendingAssetDeletion
from app.services.article_service import ARTICLE_LIST_CACHE_KEY
from app.services.asset_cleanup_service import AssetCleanupService
from app.utils.validators import validate_article_payload, ROLES

@click.command('status')
@with_appcontext
def status():
    """
    [验证指令] 查看当前数据库中的数据统计。
    """
    click.echo(click.style('📊 后台数据库状态:', fg='cyan', bold=True))

    try:
        a_count = Article.query.count()
        u_count = AdminUser.query.count()
        p_count = PendingAssetDeletion.query.count()

        click.echo(f" - 文章 (Articles): \t{a_count}")
        click.echo(f" - 账号 (Admin users): \t{u_count}")
        click.echo(f" - 待删除资源 (Pending): \t{p_count}")

        if u_count == 0:
            click.echo(click.style('⚠ 尚无后台账号，请运行 flask create-admin。', fg='yellow'))
        if p_count > 0:
            click.echo(click.style('⚠ 存在待删除资源，请运行 flask assets sweep。', fg='yellow'))

    except Exception as e:
        click.echo(click.style(f'✘ 数据库读取失败: {str(e)}', fg='red'))
        click.echo("请检查是否执行了 'flask db upgrade'")


@click.command('create-admin')
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--email', default=None)
@click.option('--role', type=click.Choice(ROLES), default='superadmin', show_default=True)
@with_appcontext
def create_admin(username, password, email, role):
    """创建后台账号"""
    db.create_all()
    if AdminUser.query.filter_by(username=username).first():
        raise click.ClickException(f'用户名 {username} 已存在')

    user = AdminUser(username=username, email=email, password=password, role=role, active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(click.style(f'✔ 已创建 {role} 账号: {username}', fg='green'))


@click.command('seed-articles')
@click.argument('seed_file', type=click.File('r', encoding='utf-8'))
@click.option('--yes', is_flag=True, help='跳过确认')
@with_appcontext
def seed_articles(seed_file, yes):
    """
    用 JSON 文件替换全部文章。
    警告：这将删除数据库中的现有文章（不会删除托管图片）！
    """
    items = json.load(seed_file)
    if not isinstance(items, list):
        raise click.ClickException('种子文件必须是文章数组')
    if not yes:
        click.confirm(f'将删除全部文章并导入 {len(items)} 篇，继续？', abort=True)

    db.create_all()
    Article.query.delete()
    for item in items:
        article = Article()
        db.session.add(article.apply(validate_article_payload(item)))
        db.session.flush()
    db.session.commit()
    cache.delete(ARTICLE_LIST_CACHE_KEY)
    click.echo(click.style(f'✔ 已导入 {len(items)} 篇文章', fg='green'))


@click.group('assets')
def assets():
    """托管资源维护"""


@assets.command('pending')
@with_appcontext
def assets_pending():
    """列出待删除资源"""
    rows = AssetCleanupService.pending()
    if not rows:
        click.echo('没有待删除资源。')
        return
    for row in rows:
        click.echo(f'{row.public_id}\t{row.reason}\t尝试 {row.attempts}\t{row.last_error or ""}')


@assets.command('sweep')
@click.option('--limit', type=int, default=None, help='单次最多处理的记录数')
@with_appcontext
def assets_sweep(limit):
    """重试删除所有待删除资源（幂等）"""
    result = AssetCleanupService.sweep(limit or current_app.config['ASSET_SWEEP_BATCH'])
    color = 'green' if result.failed == 0 else 'yellow'
    click.echo(click.style(f'🧹 已删除 {result.deleted}，失败 {result.failed}', fg=color))
