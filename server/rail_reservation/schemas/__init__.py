"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .legacy import *  # noqa: F403
from .train import *  # noqa: F403
