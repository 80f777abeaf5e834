from flask import Blueprint, jsonify, request

from reliva.services.comment_service import get_comment_payload

comment_bp = Blueprint("comments", __name__)


@comment_bp.route("/comments/<comment_id>", methods=["GET"])
def get_comment(comment_id):
    comment = get_comment_payload(comment_id, request.args.get("userId"))
    if comment is None:
        return jsonify({"success": False, "error": "Comment not found"}), 404

    return jsonify({"success": True, "comment": comment}), 200
