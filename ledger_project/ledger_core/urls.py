from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    path("journal-entries/", views.journal_entries_view, name="journal-entries"),
    path(
        "journal-entries/<int:entry_id>/reverse/",
        views.reverse_journal_entry_view,
        name="journal-entry-reverse",
    ),
    path(
        "payroll-runs/<int:run_id>/reverse-deductions/",
        views.reverse_deductions_view,
        name="payroll-run-reverse-deductions",
    ),
]
