"""Plain-text rendering of eligibility and results for the CLI and notices."""

from typing import List

from grant_portal.services.bulk_removal.aggregator import ActionResult
from grant_portal.services.bulk_removal.eligibility import EligibilityReport, UserEligibility


def summarize_names(names: List[str], limit: int = 3) -> str:
    shown = ", ".join(names[:limit])
    if len(names) > limit:
        shown += f" +{len(names) - limit} others"
    return shown


def dependency_label(user: UserEligibility) -> str:
    return ", ".join(user.dependencies)


def eligibility_lines(report: EligibilityReport) -> List[str]:
    lines = [f"{len(report.eligible_for_deletion)} user(s) can be permanently deleted:"]
    lines += [f"  - {u.display_name}" for u in report.eligible_for_deletion]
    ineligible = report.ineligible_for_deletion
    if ineligible:
        lines.append(f"{len(ineligible)} user(s) have linked records and cannot be deleted:")
        lines += [f"  - {u.display_name} ({dependency_label(u)})" for u in ineligible]
    return lines


def result_lines(result: ActionResult) -> List[str]:
    lines = []
    if result.deleted:
        lines.append(f"{result.deleted} user(s) removed: {summarize_names(result.deleted_names)}")
    if result.deactivated:
        lines.append(
            f"{result.deactivated} user(s) deactivated: {summarize_names(result.deactivated_names)}"
        )
    if result.ignored:
        lines.append(
            f"{result.ignored} user(s) kept unchanged: {summarize_names(result.ignored_names)}"
        )
    if result.failed:
        lines.append(f"{result.failed} user(s) failed: {summarize_names(result.failed_names)}")
    return lines or ["No users were changed."]
