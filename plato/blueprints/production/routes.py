"""Production planning API.

Synopsis:
JSON endpoints for production plans, item completion and the job assignment
ledger. Every route runs for the caller's company; service errors are rendered
by the app-wide ``ProductionError`` handler.

Glossary:
- Plan: Dated window of recipe items with per-destination allocations.
- Assignment: Staff member scheduled onto an item for one day.
"""

import logging

from flask import g, request
from flask_login import current_user, login_required

from plato.services.job_assignments import JobAssignmentService, serialize_assignment, serialize_assignments
from plato.services.production_planning import PlanService, serialize_item_status, serialize_plan
from plato.utils.api_responses import APIResponse
from plato.utils.permissions import require_company, require_permission
from plato.utils.validation_helpers import parse_date

from . import production_api_bp

logger = logging.getLogger(__name__)


def _save_from_payload(plan_id=None):
    data = APIResponse.request_payload()
    return PlanService.save_plan(
        company_id=g.company_id,
        plan_id=plan_id,
        name=data.get("name"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
        notes=data.get("notes"),
        items=data.get("items"),
        user_id=current_user.id,
    )


# =========================================================
# PLANS
# =========================================================
# --- List plans ---
# Purpose: Company plans, newest window first.
# Inputs: optional start/end query params bounding the window.
@production_api_bp.route("/plans", methods=["GET"])
@login_required
@require_company
def list_plans():
    plans = PlanService.list_plans(
        company_id=g.company_id,
        window_start=parse_date(request.args.get("start"), "start", required=False),
        window_end=parse_date(request.args.get("end"), "end", required=False),
    )
    return APIResponse.success([serialize_plan(plan, include_summary=False) for plan in plans])


# --- Create plan ---
# Purpose: Persist a new plan and kick off order status sync.
# Outputs: Hydrated plan (201).
@production_api_bp.route("/plans", methods=["POST"])
@login_required
@require_company
@require_permission("production:plan")
def create_plan():
    plan = _save_from_payload()
    return APIResponse.success(serialize_plan(plan), message="Production plan saved", status_code=201)


@production_api_bp.route("/plans/<int:plan_id>", methods=["GET"])
@login_required
@require_company
def get_plan(plan_id):
    plan = PlanService.get_plan(company_id=g.company_id, plan_id=plan_id)
    return APIResponse.success(serialize_plan(plan))


# --- Replace plan ---
# Purpose: Full replace of name, window, notes and every item.
@production_api_bp.route("/plans/<int:plan_id>", methods=["PUT"])
@login_required
@require_company
@require_permission("production:plan")
def replace_plan(plan_id):
    plan = _save_from_payload(plan_id)
    return APIResponse.success(serialize_plan(plan), message="Production plan saved")


@production_api_bp.route("/plans/<int:plan_id>", methods=["DELETE"])
@login_required
@require_company
@require_permission("production:plan")
def delete_plan(plan_id):
    PlanService.delete_plan(company_id=g.company_id, plan_id=plan_id, user_id=current_user.id)
    return APIResponse.success({"id": plan_id}, message="Production plan deleted")


# --- Toggle item completion ---
# Inputs: JSON {"completed": bool}
@production_api_bp.route("/items/<int:item_id>", methods=["PATCH"])
@login_required
@require_company
@require_permission("production:plan")
def update_item(item_id):
    data = APIResponse.request_payload()
    completed = data.get("completed")
    if isinstance(completed, str):
        completed = completed.strip().lower() in {"1", "true", "yes", "on"}
    item = PlanService.set_item_completed(
        company_id=g.company_id,
        item_id=item_id,
        completed=bool(completed),
        user_id=current_user.id,
    )
    return APIResponse.success(serialize_item_status(item))


# =========================================================
# JOB ASSIGNMENTS
# =========================================================
@production_api_bp.route("/assignments", methods=["GET"])
@login_required
@require_company
def list_assignments():
    assignments = JobAssignmentService.list_assignments(
        company_id=g.company_id,
        membership_id=request.args.get("membership_id"),
        production_item_id=request.args.get("production_item_id"),
        assigned_date=request.args.get("assigned_date"),
    )
    return APIResponse.success({"assignments": serialize_assignments(assignments)})


# --- Assign staff member ---
# Inputs: production_item_id, membership_id, assigned_date, optional notes.
# Outputs: Hydrated assignment (201); 409 already_assigned on a duplicate.
@production_api_bp.route("/assignments", methods=["POST"])
@login_required
@require_company
@require_permission("production:assign")
def create_assignment():
    data = APIResponse.request_payload()
    assignment = JobAssignmentService.assign(
        company_id=g.company_id,
        production_item_id=data.get("production_item_id"),
        membership_id=data.get("membership_id"),
        assigned_date=data.get("assigned_date"),
        notes=data.get("notes"),
        user_id=current_user.id,
    )
    return APIResponse.success(
        {"assignment": serialize_assignment(assignment)},
        message="Assignment created",
        status_code=201,
    )


@production_api_bp.route("/assignments/<int:assignment_id>", methods=["DELETE"])
@login_required
@require_company
@require_permission("production:assign")
def delete_assignment(assignment_id):
    JobAssignmentService.unassign(company_id=g.company_id, assignment_id=assignment_id)
    return APIResponse.success({"id": assignment_id}, message="Assignment removed")
