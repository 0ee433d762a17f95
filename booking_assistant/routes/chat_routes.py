from flask import Blueprint, current_app, jsonify, request

chat_bp = Blueprint("chat", __name__)


def _controller():
    return current_app.extensions["chat_controller"]


@chat_bp.route("/chat/sessions/<session_id>/tools/<tool_name>", methods=["POST"])
def call_tool(session_id, tool_name):
    """Route: Delegate to controller"""
    body, status = _controller().handle_tool_call(session_id, tool_name, request.get_json(silent=True))
    return jsonify(body), status


@chat_bp.route("/chat/sessions/<session_id>/turns", methods=["POST"])
def run_turn(session_id):
    body, status = _controller().handle_turn(session_id, request.get_json(silent=True))
    return jsonify(body), status


@chat_bp.route("/chat/sessions/<session_id>/context", methods=["GET"])
def get_context(session_id):
    body, status = _controller().get_context(session_id)
    return jsonify(body), status


@chat_bp.route("/chat/sessions/<session_id>", methods=["DELETE"])
def clear_session(session_id):
    body, status = _controller().clear_session(session_id)
    return jsonify(body), status


@chat_bp.route("/chat/tools", methods=["GET"])
def list_tools():
    body, status = _controller().list_tools()
    return jsonify(body), status


@chat_bp.route("/health", methods=["GET"])
def health():
    body, status = _controller().health()
    return jsonify(body), status
