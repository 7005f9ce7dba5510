"""Dispatch of provider actions, sequentially or concurrently.

Every function takes an explicit ProviderContext holding the registry, the
active-account cache and the default timeout, so there is no module-level
state and tests can run against fake providers.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from .accounts import ActiveAccountCache
from .config import Config
from .errors import DispatchError, DispatchTimeoutError, ProviderActionError
from .providers import build_registry
from .providers.base import Provider, ProviderRegistry
from .vm import VMList

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Cancellation event of the dispatch the current worker thread belongs to.
_worker = threading.local()


def current_cancel_event() -> Optional[threading.Event]:
    """Return the cancellation event of the running concurrent dispatch.

    Inside an action run by fan_out or providers_parallel this is an event
    that gets set when that dispatch times out, so long-running backends can
    stop early. Outside such an action it is None.
    """
    return getattr(_worker, "cancel_event", None)


class ProviderContext:
    """Registry, account cache and dispatch settings for one process."""

    def __init__(self, registry: ProviderRegistry, timeout: Optional[float] = None):
        self.registry = registry
        self.timeout = timeout
        self.accounts = ActiveAccountCache()

    @classmethod
    def from_config(cls, config: Config) -> "ProviderContext":
        """Build a context with the providers enabled in config."""
        return cls(build_registry(config), timeout=config.dispatch_timeout)


def all_provider_names(ctx: ProviderContext) -> List[str]:
    """Return the names of all registered providers, in no particular order."""
    return ctx.registry.names()


def for_provider(ctx: ProviderContext, name: str, action: Callable[[Provider], T]) -> T:
    """Resolve the named provider and run action against it.

    Raises:
        UnknownProviderError: If name is not registered
        ProviderActionError: If action raises; the original error is chained
    """
    provider = ctx.registry.get(name)
    try:
        return action(provider)
    except Exception as e:
        raise ProviderActionError(name, e) from e


def providers_sequential(
    ctx: ProviderContext, names: Iterable[str], action: Callable[[Provider], object]
) -> None:
    """Run action for each named provider in order, stopping at the first error."""
    for name in names:
        for_provider(ctx, name, action)


def providers_parallel(
    ctx: ProviderContext,
    names: Iterable[str],
    action: Callable[[Provider], object],
    timeout: Optional[float] = None,
) -> None:
    """Run action concurrently for each named provider and wait for all.

    Every name is invoked exactly once regardless of the others' outcome.

    Raises:
        DispatchError: If any invocation failed, with every failure by name
        DispatchTimeoutError: If the invocations outlast the timeout
    """
    tasks = [(name, lambda n=name: for_provider(ctx, n, action)) for name in names]
    _run_concurrently(ctx, tasks, timeout)


def fan_out(
    ctx: ProviderContext,
    vms: Iterable,
    action: Callable[[Provider, VMList], object],
    timeout: Optional[float] = None,
) -> None:
    """Group VMs by provider and run action for each group concurrently.

    Each provider receives the sub-list of its VMs in input order, so every
    VM is delivered exactly once. All groups run to completion even when a
    sibling fails.

    Raises:
        DispatchError: If any group failed, with every failure by provider
        DispatchTimeoutError: If the groups outlast the timeout
    """
    groups = VMList(vms).by_provider()

    def make_task(name: str, group: VMList):
        def task():
            return action(ctx.registry.get(name), group)

        return task

    tasks = [(name, make_task(name, group)) for name, group in groups.items()]
    _run_concurrently(ctx, tasks, timeout)


def find_active_accounts(ctx: ProviderContext) -> Dict[str, str]:
    """Query every provider for its active account name.

    The result is computed once per context and cached; providers reporting
    an empty account are omitted. Each call returns an independent copy.
    """

    def load() -> Dict[str, str]:
        accounts: Dict[str, str] = {}

        def lookup(provider: Provider):
            account = provider.find_active_account()
            if account:
                accounts[provider.name()] = account

        providers_sequential(ctx, all_provider_names(ctx), lookup)
        logger.debug("Active accounts: %s", accounts)
        return accounts

    return ctx.accounts.get(load)


def _run_concurrently(
    ctx: ProviderContext, tasks: List[Tuple[str, Callable[[], object]]], timeout: Optional[float]
) -> None:
    if not tasks:
        return
    if timeout is None:
        timeout = ctx.timeout
    deadline = None if timeout is None else time.monotonic() + timeout
    cancel_event = threading.Event()

    def run(task: Callable[[], object]):
        previous = current_cancel_event()
        _worker.cancel_event = cancel_event
        try:
            return task()
        finally:
            _worker.cancel_event = previous

    executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="fleetvm")
    failures: Dict[str, BaseException] = {}
    first: Optional[BaseException] = None
    try:
        future_to_name: Dict[Future, str] = {}
        for name, task in tasks:
            logger.debug("Dispatching to %s", name)
            future_to_name[executor.submit(run, task)] = name

        pending = set(future_to_name)
        while pending:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    name = future_to_name[future]
                    logger.warning("Provider %s failed: %s", name, error)
                    failures[name] = error
                    if first is None:
                        first = error
            if not done:
                cancel_event.set()
                raise DispatchTimeoutError(
                    [future_to_name[f] for f in pending], timeout, failures
                ) from first
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if failures:
        raise DispatchError(failures, first) from first
