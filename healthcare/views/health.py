from django.db import connections
from django.http import JsonResponse


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except Exception as e:
        return JsonResponse({'success': False, 'message': str(e)}, status=500)
    return JsonResponse({'success': True, 'data': {'db': bool(row and row[0] == 1)}})
