from django.db import connection
from drf_spectacular.utils import extend_schema
from rest_framework.decorators import api_view
from rest_framework.response import Response


@extend_schema(tags=["Health Endpoint"], summary="Health check")
@api_view(["GET"])
def health(request):
    # Every reservation call is a database round-trip; report when it is down
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        database = "ok"
    except Exception:
        database = "unavailable"
    code = 200 if database == "ok" else 503
    return Response({"status": "ok" if code == 200 else "degraded", "database": database}, status=code)
