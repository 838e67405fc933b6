"""Store paths used by the client"""

from . import config


def greenhouse_path(device_id: str) -> str:
    return f"{config.GREENHOUSES_ROOT}/{device_id}"


def history_path(device_id: str) -> str:
    return f"{config.HISTORY_ROOT}/{device_id}"


def user_path(user_id: str) -> str:
    return f"{config.USERS_ROOT}/{user_id}"
