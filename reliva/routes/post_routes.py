from flask import Blueprint, current_app, jsonify, request

from reliva.services.post_service import get_feed

post_bp = Blueprint("posts", __name__)


@post_bp.route("/posts", methods=["GET"])
def list_posts():
    viewer_id = request.args.get("userId")
    page = request.args.get("page", default=1, type=int)
    limit = request.args.get(
        "limit",
        default=current_app.config["FEED_PAGE_LIMIT"],
        type=int
    )

    data = get_feed(viewer_id, page, limit, current_app.config["FEED_MAX_LIMIT"])
    return jsonify({"success": True, **data}), 200
