"""Poll-until-terminal primitive shared by stack and change set tracking."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from cf_utils.lib.result import Err, Result

DEFAULT_INTERVAL = 5.0


@dataclass(frozen=True)
class PollPolicy:
    """How to wait between status checks.

    timeout=None waits until the remote operation reaches a terminal state,
    however long that takes. Elapsed time is counted in intervals slept, so
    a custom `sleep` makes polling deterministic in tests.
    """

    interval: float = DEFAULT_INTERVAL
    timeout: float | None = None
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)


def poll[T, E](
    check: Callable[[], Result[T, E] | None],
    policy: PollPolicy,
    on_timeout: Callable[[float], E],
) -> Result[T, E]:
    """Call `check` until it returns a Result.

    `check` returns Ok/Err once a terminal state is reached and None while
    the operation is still in progress. When the policy's timeout is
    exhausted, returns Err(on_timeout(elapsed)).
    """
    elapsed = 0.0
    while True:
        outcome = check()
        if outcome is not None:
            return outcome

        if policy.timeout is not None and elapsed >= policy.timeout:
            return Err(on_timeout(elapsed))

        policy.sleep(policy.interval)
        elapsed += policy.interval

