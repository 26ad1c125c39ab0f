from rest_framework import status as http_status
from rest_framework.response import Response


def api_response(data, message: str, status: int = http_status.HTTP_200_OK, etag=None) -> Response:
    response = Response(
        {"statusCode": status, "success": status < 400, "message": message, "data": data},
        status=status,
    )
    if etag is not None:
        response["ETag"] = f'"{etag}"'
    return response
