from startlist.models.club import Club
from startlist.models.competition import Competition
from startlist.models.member import Member
from startlist.models.registration import Registration
from startlist.models.result_entry import ResultEntry
from startlist.models.start_list import StartList

__all__ = [
    "Club",
    "Competition",
    "Member",
    "Registration",
    "ResultEntry",
    "StartList",
]
