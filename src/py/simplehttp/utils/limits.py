from typing import NamedTuple
from enum import Enum
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


REASONABLE_LIMITS: dict[LimitType, int] = {
	# Each connection holds a socket, and a file while it is being served
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(scope: LimitType, *, maximum: int | None = 0) -> int | bool:
	"""Raises the soft limit for `scope` up to its hard limit, capped
	to a reasonable maximum. Returns the new limit, or `False` when it
	could not be changed."""
	lm = limit(scope)
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	# Darwin has really high limits that will lead to OverflowErrors.
	maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
	target: int = (
		(maximum or lm.soft) if lm.hard == resource.RLIM_INFINITY else lm.hard
	)
	if maximum:
		target = max(lm.soft, min(maximum, target))
	try:
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except ValueError:
		return False
	except OSError:
		return False


# EOF
