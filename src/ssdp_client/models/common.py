from enum import Enum

from pydantic import BaseModel


class BasePydanticModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "frozen": True,
    }

class AddressFamily(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

class SessionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting" # transient, inside start()
    LISTENING = "listening"
    STOPPING = "stopping" # transient, inside stop()

# Well-known SSDP multicast groups
SSDP_IPV4_GROUP = "239.255.255.250"
SSDP_IPV6_GROUP = "ff02::c" # link-local; "ff05::c" would be site-local
SSDP_PORT = 1900
DEFAULT_SEARCH_TARGET = "ssdp:all"
