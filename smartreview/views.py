from django.conf import settings
from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for monitoring"""
    return JsonResponse({
        'status': 'healthy',
        'service': 'smartreview',
        'version': '1.0.0',
        'widget_script_version': settings.WIDGET_SCRIPT_VERSION,
    })


def handler404(request, exception):
    """JSON 404 for an API-only app"""
    return JsonResponse({'error': 'Not found'}, status=404)


def handler500(request):
    """JSON 500 without internal detail"""
    return JsonResponse({'error': 'Internal server error'}, status=500)
