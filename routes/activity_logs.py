# routes/activity_logs.py
# Журнал действий: полный для администратора, собственный для любого пользователя

from flask import Blueprint, jsonify, request, session
from sqlalchemy import select

from extensions import db
from models import ActivityLog
from routes.auth import admin_required, login_required

activity_logs_bp = Blueprint('activity_logs', __name__, url_prefix='/api/activity-logs')

MAX_PAGE_SIZE = 100


def _paginated(query):
    page = request.args.get('page', 1, type=int)
    limit = min(request.args.get('limit', 20, type=int), MAX_PAGE_SIZE)
    pagination = db.paginate(query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()),
                             page=page, per_page=limit, error_out=False)
    return jsonify({
        'logs': [log.to_dict() for log in pagination.items],
        'total': pagination.total,
        'pages': pagination.pages,
        'current_page': pagination.page,
    })


@activity_logs_bp.route('', methods=['GET'])
@admin_required
def list_logs():
    query = select(ActivityLog)
    action = request.args.get('action')
    entity_type = request.args.get('entity_type')
    user_id = request.args.get('user_id', type=int)
    if action:
        query = query.where(ActivityLog.action == action)
    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
    if user_id:
        query = query.where(ActivityLog.user_id == user_id)
    return _paginated(query)


@activity_logs_bp.route('/mine', methods=['GET'])
@login_required
def my_logs():
    return _paginated(select(ActivityLog).where(ActivityLog.user_id == session['user_id']))
