"""Apply a plan against a provider in dependency order."""

import heapq
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Set, Tuple
from .models import ApplyResult
from ..ingest.models import Reference, split_address
from ..ingest.references import resolve_value
from ..planner.models import Plan, PlanAction, PlanEntry
from ..provider.base import Provider
from ..state.models import ResourceState, StateSnapshot
from ..state.store import StateStore
from ..utils.errors import PartialApplyError, ProvisioningError, StackPlanError
from ..utils.logging import get_logger

logger = get_logger("executor.reconciler")

# Upper bound on how long the scheduler sleeps before re-checking deadlines.
_MAX_WAIT = 1.0

PENDING = "pending"
RUNNING = "running"
DONE = "done"
FAILED = "failed"
SKIPPED = "skipped"


class Executor:
    """
    Applies plan entries with a bounded worker pool.

    An entry starts once every predecessor succeeded: its dependencies for
    CREATE, UPDATE and NO_OP; for DELETE, every entry whose recorded state
    depends on the deleted resource. Only the scheduling thread touches the
    snapshot, saving it after every confirmed operation.
    """

    def __init__(
        self,
        provider: Provider,
        store: Optional[StateStore] = None,
        parallelism: int = 10,
        operation_timeout: float = 1800.0,
    ):
        """
        Initialize executor.

        Args:
            provider: Provisioning API client
            store: State store saved after every confirmed operation (None keeps state in memory)
            parallelism: Maximum concurrent provider operations
            operation_timeout: Seconds from submission before a single operation is failed
        """
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        self.provider = provider
        self.store = store
        self.parallelism = parallelism
        self.operation_timeout = operation_timeout
        self.snapshot: Optional[StateSnapshot] = None
        self._cancel = threading.Event()
        self._deadlines: Dict[str, float] = {}

    def cancel(self) -> None:
        """Stop starting new operations of the current run; in-flight operations finish and are recorded."""
        if not self._cancel.is_set():
            logger.warning("Cancelling apply: waiting for in-flight operations to finish")
            self._cancel.set()
            self.provider.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def apply(self, plan: Plan, snapshot: StateSnapshot) -> ApplyResult:
        """
        Apply the plan.

        Args:
            plan: Plan from build_plan
            snapshot: State snapshot the plan was built against

        Returns:
            ApplyResult when every entry succeeded

        Raises:
            PartialApplyError: If any entry failed or was skipped
        """
        self._cancel.clear()
        self._deadlines = {}
        self.snapshot = snapshot
        entries = {entry.address: entry for entry in plan.entries}
        position = {entry.address: i for i, entry in enumerate(plan.entries)}
        predecessors = self._predecessors(plan, snapshot)
        successors: Dict[str, Set[str]] = {address: set() for address in entries}
        for address, preds in predecessors.items():
            for pred in preds:
                successors[pred].add(address)

        status = {address: PENDING for address in entries}
        waiting = {address: set(preds) for address, preds in predecessors.items()}
        errors: Dict[str, str] = {}
        ready: List[Tuple[int, str]] = []
        for address, preds in waiting.items():
            if not preds:
                heapq.heappush(ready, (position[address], address))

        def release(address: str) -> None:
            for succ in successors[address]:
                waiting[succ].discard(address)
                if not waiting[succ] and status[succ] == PENDING:
                    heapq.heappush(ready, (position[succ], succ))

        def fail(address: str, reason: str) -> None:
            status[address] = FAILED
            errors[address] = reason
            logger.error(f"{address}: {reason}")
            for dependent in self._reachable(address, successors):
                if status[dependent] == PENDING:
                    status[dependent] = SKIPPED
                    logger.warning(f"{dependent}: skipped because {address} failed")

        logger.info(f"Applying {len(plan.changes)} change(s) with parallelism {self.parallelism}")
        pool = self._new_pool()
        pools = [pool]
        running: Dict[Future, PlanEntry] = {}
        try:
            while True:
                while ready and len(running) < self.parallelism and not self.cancelled:
                    _, address = heapq.heappop(ready)
                    if status[address] != PENDING:
                        continue
                    entry = entries[address]
                    if entry.action == PlanAction.NO_OP:
                        try:
                            self._record_unchanged(entry)
                        except StackPlanError as e:
                            fail(address, f"state could not be saved: {e}")
                            self.cancel()
                            continue
                        status[address] = DONE
                        release(address)
                        continue
                    try:
                        attributes = self._resolve(entry)
                    except ProvisioningError as e:
                        fail(address, e.reason)
                        continue
                    status[address] = RUNNING
                    logger.info(f"{address}: {entry.action.value.lower()} started")
                    self._deadlines[address] = time.monotonic() + self.operation_timeout
                    running[pool.submit(self._run_entry, entry, attributes)] = entry

                if not running:
                    break

                try:
                    done, _ = wait(list(running), timeout=self._wait_timeout(running), return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    self.cancel()
                    continue

                for future in done:
                    entry = running.pop(future)
                    error = future.exception()
                    if error is not None:
                        reason = error.reason if isinstance(error, ProvisioningError) else str(error) or type(error).__name__
                        fail(entry.address, reason)
                        continue
                    try:
                        self._record(entry, *future.result())
                    except StackPlanError as e:
                        fail(entry.address, f"applied, but state could not be saved: {e}")
                        self.cancel()
                        continue
                    status[entry.address] = DONE
                    logger.info(f"{entry.address}: {entry.action.value.lower()} complete")
                    release(entry.address)

                for future, entry in list(running.items()):
                    if self._expired(entry.address):
                        running.pop(future)
                        fail(entry.address, f"timed out after {self.operation_timeout:g}s")
                        if not future.cancel():
                            # The abandoned call keeps its worker; later entries get a fresh pool.
                            pool = self._new_pool()
                            pools.append(pool)
        finally:
            for stale in pools:
                stale.shutdown(wait=False, cancel_futures=True)

        for address, state in status.items():
            if state == PENDING:
                status[address] = SKIPPED

        result = self._result(plan, status, errors)
        if not result.ok:
            raise PartialApplyError(result)
        logger.info(f"Apply complete: {len(result.succeeded)} succeeded, {len(result.unchanged)} unchanged")
        return result

    def _predecessors(self, plan: Plan, snapshot: StateSnapshot) -> Dict[str, Set[str]]:
        by_address = {entry.address: entry for entry in plan.entries}
        predecessors: Dict[str, Set[str]] = {}
        for entry in plan.entries:
            if entry.action != PlanAction.DELETE:
                predecessors[entry.address] = {dep for dep in entry.dependencies if dep in by_address}
            else:
                predecessors[entry.address] = set()

        # A deletion waits for everything that was applied on top of the deleted resource.
        for entry in plan.entries:
            prior = snapshot.get(entry.address)
            recorded = entry.dependencies if entry.action == PlanAction.DELETE else (prior.dependencies if prior else [])
            for dep in recorded:
                dep_entry = by_address.get(dep)
                if dep_entry is not None and dep_entry.action == PlanAction.DELETE:
                    predecessors[dep].add(entry.address)
        return predecessors

    @staticmethod
    def _reachable(address: str, successors: Dict[str, Set[str]]) -> Set[str]:
        seen: Set[str] = set()
        stack = list(successors[address])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(successors[current])
        return seen

    def _resolve(self, entry: PlanEntry) -> Dict[str, Any]:
        """Resolve references from values confirmed so far."""
        if entry.action == PlanAction.DELETE:
            return {}

        def lookup(ref: Reference) -> Any:
            state = self.snapshot.get(ref.address)
            if state is None or not state.has_value(ref.attribute):
                raise ProvisioningError(f"Reference {ref} has no value after apply")
            return state.value_of(ref.attribute)

        return {key: resolve_value(value, lookup) for key, value in entry.resource.attributes.items()}

    def _run_entry(self, entry: PlanEntry, attributes: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any], Dict[str, Any]]:
        """Worker: perform one provider call."""
        try:
            if entry.action == PlanAction.CREATE:
                resource_id, outputs = self.provider.create(entry.type, attributes)
                return resource_id, attributes, outputs
            if entry.action == PlanAction.UPDATE:
                outputs = self.provider.update(entry.resource_id, attributes)
                return entry.resource_id, attributes, outputs
            self.provider.delete(entry.resource_id)
            return None, {}, {}
        except ProvisioningError as e:
            raise ProvisioningError(e.reason, address=entry.address) from e

    def _new_pool(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.parallelism, thread_name_prefix="stackplan-apply")

    def _wait_timeout(self, running: Dict[Future, PlanEntry]) -> float:
        now = time.monotonic()
        timeout = _MAX_WAIT
        for entry in running.values():
            timeout = min(timeout, self._deadlines[entry.address] - now)
        return max(timeout, 0.0)

    def _expired(self, address: str) -> bool:
        """Deadlines count from submission, so an entry still queued behind a stuck call expires too."""
        return time.monotonic() >= self._deadlines[address]

    def _record(self, entry: PlanEntry, resource_id: Optional[str], attributes: Dict[str, Any], outputs: Dict[str, Any]) -> None:
        """Single writer: fold a confirmed operation into the snapshot and persist it."""
        if entry.action == PlanAction.DELETE:
            snapshot = self.snapshot.without_resource(entry.address)
        else:
            resource_type, name = split_address(entry.address)
            snapshot = self.snapshot.with_resource(ResourceState(
                type=resource_type,
                name=name,
                id=resource_id,
                attributes=attributes,
                outputs=outputs or {},
                dependencies=list(entry.dependencies),
            ))
        self._save(snapshot)

    def _record_unchanged(self, entry: PlanEntry) -> None:
        prior = self.snapshot.get(entry.address)
        if prior is not None and prior.dependencies != list(entry.dependencies):
            self._save(self.snapshot.with_resource(prior.model_copy(update={"dependencies": list(entry.dependencies)})))

    def _save(self, snapshot: StateSnapshot) -> None:
        snapshot = snapshot.model_copy(update={"serial": snapshot.serial + 1})
        if self.store is not None:
            self.store.save(snapshot)
        self.snapshot = snapshot

    def _result(self, plan: Plan, status: Dict[str, str], errors: Dict[str, str]) -> ApplyResult:
        result = ApplyResult(errors=errors, cancelled=self.cancelled)
        for entry in plan.entries:
            state = status[entry.address]
            if entry.action == PlanAction.NO_OP:
                if state == DONE:
                    result.unchanged.append(entry.address)
                elif state == FAILED:
                    result.failed.append(entry.address)
                else:
                    result.skipped.append(entry.address)
                continue
            if state == DONE:
                result.succeeded.append(entry.address)
            elif state == FAILED:
                result.failed.append(entry.address)
            else:
                result.skipped.append(entry.address)
        return result
