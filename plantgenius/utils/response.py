from flask import jsonify


def api_response(data, status: int = 200):
    return jsonify(data), status


def error_response(message: str, status: int, **extra):
    # Every error crosses the boundary as {"error": "<message>"}
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status
