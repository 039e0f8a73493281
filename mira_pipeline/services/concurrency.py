import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional


@dataclass(frozen=True)
class Outcome:
    """Settled result of one concurrent branch."""
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: Any) -> Any:
        return self.value if self.ok else default


async def settle_all(*awaitables: Awaitable[Any]) -> List[Outcome]:
    """Run awaitables concurrently and wait for every one to settle.

    A failing branch never cancels its siblings. Cancellation of the caller
    is re-raised rather than settled.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    outcomes = []
    for result in results:
        if isinstance(result, Exception):
            outcomes.append(Outcome(error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(Outcome(value=result))
    return outcomes
