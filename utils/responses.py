from flask import jsonify


def success_response(message: str, status: int = 200, **fields):
    body = {"success": True, "message": message}
    body.update(fields)
    return jsonify(body), status


def error_response(message: str, code: str, status: int, **fields):
    body = {"success": False, "message": message, "code": code}
    body.update(fields)
    return jsonify(body), status


def validation_error(errors):
    return error_response("Dados inválidos", "VALIDATION_ERROR", 400, errors=errors)
