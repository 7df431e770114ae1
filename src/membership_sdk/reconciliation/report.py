"""Report generation for reconciliation outcomes."""

import json

from .models import ReconciliationOutcome


class ReportGenerator:
    """Generator for reconciliation reports in various formats."""

    def __init__(self, outcome: ReconciliationOutcome):
        """Initialize the report generator.

        Args:
            outcome: The reconciliation outcome to generate output from.
        """
        self.outcome = outcome

    def to_json(self, indent: int = 2) -> str:
        """Generate JSON representation of the outcome."""
        return json.dumps(self.outcome.to_dict(), indent=indent)

    def to_summary_text(self) -> str:
        """Generate a human-readable text summary of the outcome.

        Returns:
            Formatted text summary.
        """
        data = self.outcome.to_dict()
        totals = data["totals"]

        lines = [
            "=" * 60,
            "FAMILY SEASON RECONCILIATION",
            "=" * 60,
            f"Family: {data['family_id']}",
            f"Season: {data['season_id']}",
            f"Allocation policy: {data['allocation_policy']}",
            "",
            "Totals:",
            f"  Gross: {totals['gross']}",
            f"  Sibling discount: {totals['discount']}",
            f"  Donations applied: {totals['donation_applied']}",
            f"  Due: {totals['due']}",
            f"  Received: {totals['received']}",
            f"  Balance: {totals['balance']}",
            "",
        ]

        if data["members"]:
            lines.append("Members:")
            for m in data["members"]:
                lines.append(
                    f"  #{m['family_order']} member {m['member_id']}: "
                    f"membership {m['membership_fee']} - {m['discount']}, "
                    f"workshops {m['workshop_fees']}, net {m['net']} -> {m['status']}"
                )
        else:
            lines.append("No member with intent for this season.")

        if data["skipped_cancelled"]:
            skipped = ", ".join(str(i) for i in data["skipped_cancelled"])
            lines.extend(["", f"Cancelled (untouched): {skipped}"])

        lines.append("=" * 60)
        return "\n".join(lines)
