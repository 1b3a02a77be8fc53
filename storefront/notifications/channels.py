from enum import Enum


class Channel(str, Enum):
    INAPP_USER = "inapp_user"
    INAPP_ADMIN = "inapp_admin"
