"""
Start list validation: structural checks run before a client-edited
configuration is accepted, and on demand for the editor UI.

Errors break an invariant; warnings are worth showing but never block.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from startlist.services.start_list_schema import StartListConfiguration, is_unknown_club, is_valid_clock


@dataclass
class StartListValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_configuration(configuration: StartListConfiguration) -> StartListValidationResult:
    result = StartListValidationResult()
    max_per_team = configuration.settings.max_shooters_per_team

    team_numbers = [team.team_number for team in configuration.teams]
    if sorted(team_numbers) != list(range(1, len(team_numbers) + 1)):
        result.errors.append(f"Team numbers must be 1..{len(team_numbers)}, got {sorted(team_numbers)}")

    # A shooter with several class registrations may appear in several teams,
    # but each (shooter, class) entry only once and a shooter only once per team
    seen_in_team: Dict[Tuple[int, str], int] = {}
    for team in configuration.teams:
        label = f"Team {team.team_number}"

        if not is_valid_clock(team.start_time) or not is_valid_clock(team.end_time):
            result.errors.append(f"{label}: invalid time window '{team.start_time}'-'{team.end_time}'")

        positions = [shooter.position for shooter in team.shooters]
        if sorted(positions) != list(range(1, len(positions) + 1)):
            result.errors.append(f"{label}: positions must be 1..{len(positions)}, got {sorted(positions)}")

        if team.shooter_count != len(team.shooters):
            result.errors.append(f"{label}: shooter count {team.shooter_count} != {len(team.shooters)} shooters")

        expected_classes = sorted({shooter.weapon_class for shooter in team.shooters})
        if team.weapon_classes != expected_classes:
            result.errors.append(f"{label}: weapon classes {team.weapon_classes} should be {expected_classes}")

        members_in_team = set()
        for shooter in team.shooters:
            if shooter.member_id in members_in_team:
                result.errors.append(f"{label}: shooter {shooter.member_id} appears more than once")
            members_in_team.add(shooter.member_id)

            entry = (shooter.member_id, shooter.weapon_class)
            if entry in seen_in_team and seen_in_team[entry] != team.team_number:
                result.errors.append(
                    f"{label}: shooter {shooter.member_id} in class {shooter.weapon_class} "
                    f"is already in team {seen_in_team[entry]}"
                )
            else:
                seen_in_team.setdefault(entry, team.team_number)

            if not shooter.weapon_class:
                result.errors.append(f"{label}: shooter {shooter.member_id} has no weapon class")
            if is_unknown_club(shooter.club):
                result.warnings.append(f"{label}: shooter {shooter.name or shooter.member_id} has no club")

        if not team.shooters:
            result.warnings.append(f"{label} is empty")
        elif len(team.shooters) > max_per_team:
            result.warnings.append(f"{label} has {len(team.shooters)} shooters (max {max_per_team})")

    return result
