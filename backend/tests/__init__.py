# Force SQLModel table registration at test discovery time
from startlist.models.club import Club  # noqa: F401
from startlist.models.competition import Competition  # noqa: F401
from startlist.models.member import Member  # noqa: F401
from startlist.models.registration import Registration  # noqa: F401
from startlist.models.result_entry import ResultEntry  # noqa: F401
from startlist.models.start_list import StartList  # noqa: F401
