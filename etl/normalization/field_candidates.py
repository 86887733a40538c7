"""
etl/normalization/field_candidates.py

Declarative source-key priority lists per canonical field.

Case and separator variants (``STATE_NAME``, ``State Name``, ``state-name``)
are matched by the resolver, so each list only names distinct spellings.
"""

from __future__ import annotations

from etl.domain.records import PRIMARY_VOLUME_METRIC

KEY_FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "region": ("state_name", "state"),
    "sub_region": ("district_name", "district"),
    "fiscal_year": ("fin_year", "financial_year", "fiscal_year"),
    "period": ("month", "period"),
}

METRIC_FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    PRIMARY_VOLUME_METRIC: ("person_days_generated", "person_days"),
    "works_completed": ("Number_of_Completed_Works", "works_completed"),
    "works_in_progress": ("Number_of_Ongoing_Works", "works_in_progress"),
    "payments_made": ("Total_No_of_JobCards_issued", "payments_made"),
    "amount_spent": ("Total_Exp", "Total_Expenditure", "amount_spent"),
}

# Sub-population components summed when no direct person-days field exists.
VOLUME_COMPONENT_CANDIDATES: dict[str, tuple[str, ...]] = {
    "sc_persondays": ("SC_persondays",),
    "st_persondays": ("ST_persondays",),
    "women_persondays": ("Women_Persondays",),
    "central_liability_persondays": (
        "Persondays_of_Central_Liability_so_far",
        "Central_Liability_Persondays",
    ),
}
