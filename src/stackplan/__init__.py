"""stackplan - Dependency-aware planner and reconciler for declarative cloud resources."""

from contextlib import nullcontext
from typing import Any, Callable, Dict, Iterable, Optional
from .config import load_settings, resolve_environment, Settings
from .executor import ApplyResult, Executor
from .graph.dependency_graph import DependencyGraph, build_graph
from .ingest.document_loader import load_resource_files
from .planner import Plan, build_plan
from .provider import Provider, create_provider
from .schema.registry import build_registry
from .state import StateStore, state_path_for
from .utils.logging import setup_logging, get_logger

__version__ = "0.1.0"

__all__ = ["plan", "apply", "load_graph", "open_store"]

setup_logging()
logger = get_logger("stackplan")


def load_graph(paths: Iterable[str], settings: Settings, variables: Optional[Dict[str, Any]] = None) -> DependencyGraph:
    """Load resource documents and build their dependency graph."""
    registry = build_registry(settings.resource_types)
    resources = load_resource_files(paths, variables=variables, defaults=settings.defaults, registry=registry)
    return build_graph(resources, registry=registry)


def open_store(settings: Settings, environment: str) -> StateStore:
    """State store of an environment."""
    return StateStore(state_path_for(settings.state.directory, environment))


def plan(
    paths: Iterable[str],
    settings: Optional[Settings] = None,
    environment: Optional[str] = None,
    variables: Optional[Dict[str, Any]] = None,
    destroy: bool = False,
) -> Plan:
    """Build a plan without touching any resource or the state file."""
    settings = settings or load_settings()
    environment = resolve_environment(environment)
    logger.info(f"Planning environment '{environment}'")

    graph = load_graph(paths, settings, variables)
    snapshot = open_store(settings, environment).load()
    return build_plan(graph, snapshot, destroy=destroy)


def apply(
    paths: Iterable[str],
    provider: Optional[Provider] = None,
    settings: Optional[Settings] = None,
    environment: Optional[str] = None,
    variables: Optional[Dict[str, Any]] = None,
    destroy: bool = False,
    review: Optional[Callable[[Plan], bool]] = None,
) -> Optional[ApplyResult]:
    """
    Plan and apply in one step, holding the state lock throughout.

    Args:
        paths: Resource document files or directories
        provider: Provisioning client (default: built from settings and closed afterwards)
        settings: Settings (default: loaded from the config layers)
        environment: Environment name
        variables: Values for ${var.X} references
        destroy: Remove every resource in the state
        review: Called with the plan before anything is applied; returning False stops the run

    Returns:
        ApplyResult, or None if review declined the plan

    Raises:
        PartialApplyError: If any entry failed or was skipped
    """
    settings = settings or load_settings()
    environment = resolve_environment(environment)
    graph = load_graph(paths, settings, variables)
    store = open_store(settings, environment)

    with store.lock() if settings.state.lock else nullcontext():
        snapshot = store.load()
        current_plan = build_plan(graph, snapshot, destroy=destroy)
        if review is not None and not review(current_plan):
            logger.info("Apply declined")
            return None
        if not current_plan.needs_apply:
            logger.info("Nothing to apply")
            return ApplyResult(unchanged=[entry.address for entry in current_plan.entries])

        owns_provider = provider is None
        provider = provider or create_provider(settings.provider)
        try:
            executor = Executor(
                provider,
                store=store,
                parallelism=settings.executor.parallelism,
                operation_timeout=settings.executor.operation_timeout,
            )
            return executor.apply(current_plan, snapshot)
        finally:
            if owns_provider:
                provider.close()
