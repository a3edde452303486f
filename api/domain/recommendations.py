# SPDX-License-Identifier: Apache-2.0

"""
Recommendation texts for multiplication readiness.

Pure data: scoring never reads this module, so the wording can change freely.
"""

from typing import Dict, List

WEAK_SCORE_THRESHOLD = 60.0

CATEGORY_RECOMMENDATIONS: Dict[str, List[str]] = {
    "growth": [
        "Invite new people every week and follow up with recent visitors.",
        "Plan an evangelistic meeting to reach friends and family of members.",
    ],
    "consistency": [
        "Keep a fixed weekly meeting schedule and avoid cancellations.",
    ],
    "attendance": [
        "Contact absent members during the week and pray for them by name.",
        "Review the meeting format to make it more participative.",
    ],
    "leadership": [
        "Identify potential leaders and enrol them in leadership training.",
        "Delegate parts of the meeting to future leaders.",
    ],
    "maturity": [
        "Give the cell more time to consolidate before multiplying.",
    ],
    "stability": [
        "Strengthen relationships and reduce member turnover before multiplying.",
    ],
}

BLOCKING_RECOMMENDATION = "Resolve the required criteria first: {factors}."

READY_RECOMMENDATIONS: List[str] = [
    "Start planning the multiplication with your supervisor.",
    "Define the new leader and how members will be distributed.",
]
