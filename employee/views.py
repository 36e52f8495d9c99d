"""JSON introspection endpoints for the digital employee engine.

Routes (namespace ``employee``):
  GET   /employee/usage/?hours=24
  POST  /employee/profiles/<profile_id>/instructions/
"""

import json
import logging
import threading

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .services.base import UnknownSection
from .services.engine import Engine, build_engine
from .services.playbook.registry import ProfileNotFoundError, ProfileRegistry

logger = logging.getLogger(__name__)

_engine = None
_profiles = None
_lock = threading.Lock()


def get_engine() -> Engine:
    """Return the process-wide engine, building it from settings on first use."""
    global _engine
    with _lock:
        if _engine is None:
            _engine = build_engine()
        return _engine


def get_profiles() -> ProfileRegistry:
    global _profiles
    with _lock:
        if _profiles is None:
            _profiles = ProfileRegistry()
        return _profiles


@require_GET
def usage_view(request):
    """Usage statistics and recommendations for the last ``hours`` hours."""
    try:
        hours = float(request.GET.get('hours', '24'))
    except ValueError:
        return JsonResponse({'error': 'hours must be a number'}, status=400)
    if hours <= 0:
        return JsonResponse({'error': 'hours must be positive'}, status=400)

    report = get_engine().usage_report(hours)
    report['totalCost'] = float(report['totalCost'])
    report['byModel'] = {
        model: {**usage, 'cost': float(usage['cost'])}
        for model, usage in report['byModel'].items()
    }
    return JsonResponse({'windowHours': hours, **report})


@csrf_exempt
@require_POST
def instructions_view(request, profile_id):
    """Compile a profile's instructions, or refresh one section of a given document.

    Optional JSON body: ``{"section": "<name>", "document": "<current instructions>"}``.
    """
    try:
        profile = get_profiles().get_profile(profile_id)
    except ProfileNotFoundError:
        return JsonResponse({'error': f"Profile '{profile_id}' not found."}, status=404)

    payload = {}
    if request.body:
        try:
            payload = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Request body must be JSON.'}, status=400)
        if not isinstance(payload, dict):
            return JsonResponse({'error': 'Request body must be a JSON object.'}, status=400)

    engine = get_engine()
    section = payload.get('section')
    try:
        if section:
            document = engine.replace_section(payload.get('document') or '', section, profile)
        else:
            document = engine.compile_instructions(profile)
    except UnknownSection:
        return JsonResponse({'error': f"Unknown section '{section}'."}, status=400)

    logger.info(f"Instructions compiled for profile '{profile_id}' (section={section or 'all'})")
    return JsonResponse({
        'profile': profile_id,
        'sections': list(document.names),
        'fingerprint': document.fingerprint,
        'instructions': document.text,
    })
