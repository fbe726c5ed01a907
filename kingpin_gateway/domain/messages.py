"""Human-readable text for audit events and robbery results"""

from typing import Optional

from kingpin_gateway.domain.formulas import format_wealth
from kingpin_gateway.domain.models import RobberyOutcome, WearResult


def attacker_event_description(outcome: RobberyOutcome, defender_name: str) -> str:
    if not outcome.success:
        return f"Failed to rob {defender_name}"
    text = f"Robbed {defender_name} for {format_wealth(outcome.net_stolen)}"
    if outcome.item_stolen:
        text += f" and stole their {outcome.item_stolen.name}!"
    return text


def defender_event_description(outcome: RobberyOutcome, attacker_name: str) -> str:
    if not outcome.success:
        return f"Defended against robbery attempt by {attacker_name}"
    text = f"Was robbed by {attacker_name} for {format_wealth(outcome.net_stolen)}"
    if outcome.insurance_payout > 0:
        text += f" (insurance saved {format_wealth(outcome.insurance_payout)})"
    if outcome.item_stolen:
        text += f" and lost their {outcome.item_stolen.name}"
    return text


def build_result_message(
    outcome: RobberyOutcome,
    defender_name: str,
    weapon_damage: WearResult,
    armor_damage: Optional[WearResult] = None,
) -> str:
    """Summary shown to the attacker"""
    if outcome.success:
        message = f"You robbed {defender_name} for {format_wealth(outcome.net_stolen)}!"
        if outcome.insurance_payout > 0:
            message += f" (Insurance saved them {format_wealth(outcome.insurance_payout)})"
        if outcome.item_stolen:
            message += f"\nYou also stole their {outcome.item_stolen.name}!"
    else:
        message = f"You tried to rob {defender_name} but failed! Better luck next time."

    if weapon_damage.destroyed:
        message += f"\nYour {weapon_damage.item_name} broke!"
    if armor_damage is not None and armor_damage.destroyed:
        message += f"\n{defender_name}'s {armor_damage.item_name} broke!"
    return message
