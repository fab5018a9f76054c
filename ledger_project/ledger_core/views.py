import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.http import require_POST

from .exceptions import InvalidArgument, LedgerError, PermissionDenied
from .services import post_manual_entry, reverse, reverse_deductions

logger = logging.getLogger(__name__)


def _json_body(request):
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidArgument("Request body must be valid JSON.")
    if not isinstance(body, dict):
        raise InvalidArgument("Request body must be a JSON object.")
    return body


def _tenant(request):
    company = getattr(request, "company", None)
    if company is None:
        raise PermissionDenied("No active organization for this user.")
    return company


def ledger_endpoint(view):
    """Map LedgerError to its HTTP status; everything else propagates."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except LedgerError as e:
            logger.info("ledger request rejected: %s", e.code,
                        extra={"path": request.path, "code": e.code})
            return JsonResponse({"ok": False, "error": e.as_dict()}, status=e.http_status)

    return wrapper


@require_POST
@ledger_endpoint
def journal_entries_view(request):
    """Post a manual journal entry: {entry_date, description, lines: [...]}."""
    company = _tenant(request)
    body = _json_body(request)
    entry_id = post_manual_entry(
        company,
        body.get("entry_date"),
        body.get("lines") or [],
        description=body.get("description", ""),
        actor=request.user,
        role=request.company_role,
    )
    return JsonResponse({"ok": True, "id": entry_id}, status=201)


@require_POST
@ledger_endpoint
def reverse_journal_entry_view(request, entry_id):
    company = _tenant(request)
    body = _json_body(request)
    reversal_id = reverse(
        company,
        entry_id,
        reason=body.get("reason", ""),
        reversal_date=body.get("reversal_date"),
        actor=request.user,
        role=request.company_role,
    )
    return JsonResponse({"ok": True, "id": reversal_id, "reversal_of": entry_id}, status=201)


@require_POST
@ledger_endpoint
def reverse_deductions_view(request, run_id):
    company = _tenant(request)
    result = reverse_deductions(
        company, run_id, actor=request.user, role=request.company_role
    )
    return JsonResponse({
        "ok": True,
        "restored": [row.deduction_key for row in result["restored"]],
        "skipped": {row.deduction_key: row.skip_reason for row in result["skipped"]},
    })
