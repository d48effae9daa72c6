# Overview: Pure revenue-split arithmetic for settled orders.

"""
Revenue Split

Exactly one branch applies to an order, chosen in this priority:

    AFFILIATE  affiliate present                 20% affiliate, rest 50/50
    PROMO      promo code used, no affiliate     97% instructor / 3% platform
    COUPON     coupon used, no affiliate/promo   50 / 50
    NONE       nothing applied                   50 / 50

All arithmetic is integer cents and basis points. The platform takes the
remainder, so instructor + platform + affiliate == final amount exactly.

The co-author carve-out (35% of a course line's final price) is computed per
line and recorded next to these shares; it does not reduce them.
"""

from __future__ import annotations

from dataclasses import dataclass


BRANCH_AFFILIATE = "AFFILIATE"
BRANCH_PROMO = "PROMO"
BRANCH_COUPON = "COUPON"
BRANCH_NONE = "NONE"

BPS_DENOMINATOR = 10_000
CO_INSTRUCTOR_SHARE_BPS = 3_500


@dataclass(frozen=True)
class SplitRule:
    affiliate_bps: int
    instructor_bps: int  # applied to what is left after the affiliate cut


SPLIT_RULES = {
    BRANCH_AFFILIATE: SplitRule(affiliate_bps=2_000, instructor_bps=5_000),
    BRANCH_PROMO: SplitRule(affiliate_bps=0, instructor_bps=9_700),
    BRANCH_COUPON: SplitRule(affiliate_bps=0, instructor_bps=5_000),
    BRANCH_NONE: SplitRule(affiliate_bps=0, instructor_bps=5_000),
}


@dataclass(frozen=True)
class InstrumentsUsed:
    coupon: bool = False
    promo: bool = False
    affiliate: bool = False


@dataclass(frozen=True)
class RevenueSplit:
    branch: str
    instructor_share_cents: int
    platform_share_cents: int
    affiliate_share_cents: int


def bps_of(amount_cents: int, bps: int) -> int:
    """Basis-point share of an amount in cents, rounded half up."""
    return (amount_cents * bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR


def select_branch(used: InstrumentsUsed) -> str:
    if used.affiliate:
        return BRANCH_AFFILIATE
    if used.promo:
        return BRANCH_PROMO
    if used.coupon:
        return BRANCH_COUPON
    return BRANCH_NONE


def calculate_revenue(final_amount_cents: int, used: InstrumentsUsed) -> RevenueSplit:
    branch = select_branch(used)
    rule = SPLIT_RULES[branch]

    affiliate_share = bps_of(final_amount_cents, rule.affiliate_bps)
    remaining = final_amount_cents - affiliate_share
    instructor_share = bps_of(remaining, rule.instructor_bps)

    return RevenueSplit(
        branch=branch,
        instructor_share_cents=instructor_share,
        platform_share_cents=remaining - instructor_share,
        affiliate_share_cents=affiliate_share,
    )


def co_instructor_share(line_final_cents: int) -> int:
    return bps_of(line_final_cents, CO_INSTRUCTOR_SHARE_BPS)


def allocate_evenly(total_cents: int, count: int) -> list[int]:
    """Split an amount into count parts; leftover cents go to the first parts."""
    if count <= 0:
        return []
    base, leftover = divmod(total_cents, count)
    return [base + (1 if i < leftover else 0) for i in range(count)]


def allocate_pro_rata(total_cents: int, weights: list[int]) -> list[int]:
    """
    Split an amount in proportion to weights.

    Floors each part and hands the remainder to the last part, so the parts
    always sum to total_cents. Zero total weight falls back to an even split.
    """
    if not weights:
        return []
    weight_sum = sum(weights)
    if weight_sum <= 0:
        return allocate_evenly(total_cents, len(weights))

    parts = [total_cents * w // weight_sum for w in weights[:-1]]
    parts.append(total_cents - sum(parts))
    return parts
