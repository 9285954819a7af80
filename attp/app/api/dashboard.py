"""
API trang tổng quan.
"""

from __future__ import annotations

from robyn import Request, Response

from ..core.auth import require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response
from ..services.dashboard import get_dashboard_stats


def get_dashboard(request: Request) -> Response:
    """GET /api/dashboard - Số liệu tổng hợp, biểu đồ, GCN sắp hết hạn."""
    require_user(request)
    with get_session() as db:
        stats = get_dashboard_stats(db)
    return _json_response(stats)
