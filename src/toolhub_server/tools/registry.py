"""Unified tool registry.

This module provides the ToolRegistry class which handles:
- Discovering tools from external servers and local event registrations
- Merging them into one catalog keyed by tool name
- Caching the catalog (and each server's discovery) with a TTL
- Lookup, filtering, search and statistics over the catalog
- Pre-flight validation of requested tool names

The catalog is kept as an immutable snapshot. A refresh builds a complete
new snapshot before swapping it in, so readers never see a half-merged
catalog and never need to take a lock.
"""

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from toolhub_server.discovery.external import ExternalServerAdapter, ServerDiscovery
from toolhub_server.discovery.local_events import LocalEventRegistry
from toolhub_server.errors import CacheUnavailableError, DiscoveryError, UnknownToolsError
from toolhub_server.storage.cache import JsonFileCacheStore
from toolhub_server.tools.types import (
    LOCAL_EVENTS_SOURCE,
    DiscoveryReport,
    ExecutionMode,
    ListenerInfo,
    ToolDescriptor,
    ToolType,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

CATALOG_CACHE_KEY = "catalog"
SERVER_CACHE_PREFIX = "server:"
DEFAULT_CACHE_TTL = 3600
DEFAULT_CATEGORY = "general"


@dataclass(frozen=True)
class CatalogSnapshot:
    """One immutable version of the catalog.

    Attributes:
        by_source: Descriptors contributed by each source, in merge order
        tools: Merged catalog keyed by tool name
        report: Report of the discovery that produced this snapshot
        expires_at: Epoch seconds after which the snapshot is stale
    """

    by_source: Mapping[str, tuple[ToolDescriptor, ...]]
    tools: Mapping[str, ToolDescriptor]
    report: DiscoveryReport
    expires_at: float

    def is_fresh(self) -> bool:
        return self.expires_at > time.time()


class ToolRegistry:
    """Single source of truth for which tools exist and how to call them.

    Merge order is fixed: external servers in configuration order, then
    local events. When two sources provide the same tool name, the later
    source wins, a warning is logged and the collision is listed in the
    discovery report.
    """

    def __init__(
        self,
        external: ExternalServerAdapter,
        local_events: LocalEventRegistry,
        cache_store: JsonFileCacheStore | None = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
    ):
        """Initialize the ToolRegistry.

        Args:
            external: Adapter for external tool servers
            local_events: Registry of in-process event listeners
            cache_store: Optional persisted cache; without one the catalog
                         lives only in memory
            cache_ttl: Catalog and per-server cache lifetime in seconds
        """
        self.external = external
        self.local_events = local_events
        self.cache_store = cache_store
        self.cache_ttl = cache_ttl
        self._snapshot: CatalogSnapshot | None = None
        self._refresh_lock = asyncio.Lock()

    # --- Discovery ---

    def source_names(self) -> list[str]:
        """All sources that can be refreshed, in merge order."""
        return [*self.external.server_names(), LOCAL_EVENTS_SOURCE]

    @property
    def last_report(self) -> DiscoveryReport | None:
        """Report of the discovery behind the current in-memory catalog."""
        return self._snapshot.report if self._snapshot else None

    @property
    def cached_tool_count(self) -> int | None:
        """Size of the in-memory catalog, or None before the first discovery."""
        return len(self._snapshot.tools) if self._snapshot else None

    async def refresh(self, force: bool = False, source: str | None = None) -> DiscoveryReport:
        """Run a discovery cycle.

        Without force, a fresh cached catalog is reused and its report is
        returned with from_cache set. A failing source contributes no tools
        and one error entry but never aborts the other sources.

        Args:
            force: Bypass the catalog and per-server caches
            source: Only re-discover this source (a server name or
                    "local_events"), keeping the rest of the catalog.
                    A targeted refresh always queries the source.

        Returns:
            DiscoveryReport with per-source counts and error messages
        """
        async with self._refresh_lock:
            if source is not None:
                return await self._refresh_source(source)

            if not force:
                cached = self._fresh_snapshot()
                if cached is not None:
                    self._snapshot = cached
                    return replace(cached.report, from_cache=True)

            return await self._refresh_all(force)

    async def _refresh_all(
        self, force: bool, uncached_source: str | None = None
    ) -> DiscoveryReport:
        names = self.external.enabled_server_names()
        report = DiscoveryReport(discovered_at=utc_now_iso(), sources_checked=len(names) + 1)
        by_source: dict[str, tuple[ToolDescriptor, ...]] = {}

        outcomes: dict[str, tuple[ToolDescriptor, ...] | DiscoveryError] = {}
        live = []
        for name in names:
            cached = None if force or name == uncached_source else self._cached_outcome(name)
            if cached is None:
                live.append(name)
            else:
                outcomes[name] = cached

        discoveries = await self.external.discover_all(live)
        for name, discovery in discoveries.items():
            if isinstance(discovery, DiscoveryError):
                outcomes[name] = discovery
            else:
                outcomes[name] = self._accepted_outcome(name, discovery)
        outcomes[LOCAL_EVENTS_SOURCE] = await self._discover_source(LOCAL_EVENTS_SOURCE, force)

        for name in [*names, LOCAL_EVENTS_SOURCE]:
            self._record_outcome(report, by_source, name, outcomes[name])

        snapshot = self._build_snapshot(by_source, report)
        self._swap(snapshot)

        logger.info(
            f"Tool discovery completed: {report.sources_succeeded}/{report.sources_checked} "
            f"sources, {len(snapshot.tools)} tools, {len(report.errors)} errors"
        )
        return report

    async def _refresh_source(self, source: str) -> DiscoveryReport:
        report = DiscoveryReport(discovered_at=utc_now_iso(), sources_checked=1)

        if source not in self.source_names():
            report.sources_failed = 1
            report.errors.append(f"Unknown discovery source: {source}")
            logger.warning(f"Refresh requested for unknown source {source}")
            return report

        base = self._fresh_snapshot()
        if base is None:
            # Without a current catalog the other sources are discovered too
            logger.info(f"No current catalog, refreshing all sources with {source} uncached")
            return await self._refresh_all(force=False, uncached_source=source)

        outcome = await self._discover_source(source, force=True)
        if isinstance(outcome, DiscoveryError):
            # The current catalog is kept as it is
            self._record_outcome(report, {}, source, outcome)
            return report

        by_source = dict(base.by_source)
        self._record_outcome(report, by_source, source, outcome)

        snapshot = self._build_snapshot(by_source, report)
        self._swap(snapshot)

        logger.info(f"Refreshed source {source}: {report.tools_found} tools")
        return report

    async def _discover_source(
        self, source: str, force: bool
    ) -> tuple[ToolDescriptor, ...] | DiscoveryError:
        """Discover one source, returning its descriptors or the error."""
        try:
            if source == LOCAL_EVENTS_SOURCE:
                return self._local_descriptors()
            return await self._external_descriptors(source, force)
        except DiscoveryError as e:
            return e
        except Exception as e:
            return DiscoveryError(f"Failed to discover tools from {source}: {e}", source=source)

    def _record_outcome(
        self,
        report: DiscoveryReport,
        by_source: dict[str, tuple[ToolDescriptor, ...]],
        source: str,
        outcome: tuple[ToolDescriptor, ...] | DiscoveryError,
    ) -> None:
        if isinstance(outcome, DiscoveryError):
            report.sources_failed += 1
            report.errors.append(str(outcome))
            by_source.pop(source, None)
            logger.error(f"Tool discovery failed for source {source}: {outcome}")
            return

        report.sources_succeeded += 1
        report.tools_found += len(outcome)
        by_source[source] = outcome
        logger.debug(f"Discovered {len(outcome)} tools from source {source}")

    def _cached_outcome(self, server: str) -> tuple[ToolDescriptor, ...] | None:
        """Descriptors from the per-server cache entry, or None on a miss."""
        cached = self._cache_get(f"{SERVER_CACHE_PREFIX}{server}")
        if cached is None:
            return None
        try:
            return self._server_descriptors(server, ServerDiscovery.from_dict(cached))
        except Exception as e:
            logger.warning(f"Ignoring corrupt cache entry for server {server}: {e}")
            return None

    def _accepted_outcome(
        self, server: str, discovery: ServerDiscovery
    ) -> tuple[ToolDescriptor, ...] | DiscoveryError:
        """Validate a live discovery, cache it and build its descriptors."""
        if not discovery.tools:
            return DiscoveryError(f"No tools found for server: {server}", source=server)
        try:
            descriptors = self._server_descriptors(server, discovery)
        except Exception as e:
            return DiscoveryError(f"Failed to discover tools from {server}: {e}", source=server)
        self._cache_set(f"{SERVER_CACHE_PREFIX}{server}", discovery.to_dict())
        return descriptors

    async def _external_descriptors(self, server: str, force: bool) -> tuple[ToolDescriptor, ...]:
        cached = None if force else self._cached_outcome(server)
        if cached is not None:
            return cached

        outcome = self._accepted_outcome(server, await self.external.discover(server))
        if isinstance(outcome, DiscoveryError):
            raise outcome
        return outcome

    def _server_descriptors(
        self, server: str, discovery: ServerDiscovery
    ) -> tuple[ToolDescriptor, ...]:
        return tuple(
            ToolDescriptor(
                name=tool["name"],
                description=tool["description"],
                parameters=tool["input_schema"],
                type=ToolType.EXTERNAL_TOOL,
                source=server,
                origin=discovery.server_info,
                requires_auth=bool(tool.get("requires_auth", False)),
                category=tool.get("category"),
            )
            for tool in discovery.tools
        )

    def _local_descriptors(self) -> tuple[ToolDescriptor, ...]:
        descriptors = []
        for registration in self.local_events.registrations().values():
            try:
                descriptors.append(
                    ToolDescriptor(
                        name=registration.event_name,
                        description=registration.description,
                        parameters=registration.parameters,
                        type=ToolType.LOCAL_EVENT,
                        source=LOCAL_EVENTS_SOURCE,
                        origin=ListenerInfo(listener=registration.listener),
                        requires_auth=registration.requires_auth,
                        category=registration.category,
                    )
                )
            except ValueError as e:
                logger.warning(f"Invalid local event '{registration.event_name}' skipped: {e}")
        return tuple(descriptors)

    # --- Snapshot handling ---

    def _merge(
        self, by_source: Mapping[str, tuple[ToolDescriptor, ...]], report: DiscoveryReport
    ) -> dict[str, ToolDescriptor]:
        order = self.source_names()
        ordered_sources = sorted(
            by_source, key=lambda s: order.index(s) if s in order else len(order)
        )

        merged: dict[str, ToolDescriptor] = {}
        for source in ordered_sources:
            for descriptor in by_source[source]:
                previous = merged.get(descriptor.name)
                if previous is not None:
                    message = f"{descriptor.name}: {previous.source} replaced by {descriptor.source}"
                    logger.warning(f"Tool name collision, {message}")
                    report.collisions.append(message)
                merged[descriptor.name] = descriptor
        return merged

    def _build_snapshot(
        self, by_source: Mapping[str, tuple[ToolDescriptor, ...]], report: DiscoveryReport
    ) -> CatalogSnapshot:
        tools = self._merge(by_source, report)
        return CatalogSnapshot(
            by_source=MappingProxyType(dict(by_source)),
            tools=MappingProxyType(tools),
            report=report,
            expires_at=time.time() + self.cache_ttl,
        )

    def _swap(self, snapshot: CatalogSnapshot) -> None:
        """Install a new snapshot and persist it."""
        self._snapshot = snapshot
        self._cache_set(
            CATALOG_CACHE_KEY,
            {
                "expires_at": snapshot.expires_at,
                "sources": {
                    source: [descriptor.to_dict() for descriptor in descriptors]
                    for source, descriptors in snapshot.by_source.items()
                },
                "report": snapshot.report.to_dict(),
            },
        )

    def _read_cached_snapshot(self) -> CatalogSnapshot | None:
        """Load the persisted catalog.

        Returns:
            The cached snapshot, or None if there is none or it is corrupt

        Raises:
            CacheUnavailableError: If the cache store cannot be read
        """
        if self.cache_store is None:
            return None

        data = self.cache_store.get(CATALOG_CACHE_KEY)
        if data is None:
            return None

        try:
            by_source = {
                source: tuple(ToolDescriptor.from_dict(item) for item in items)
                for source, items in data["sources"].items()
            }
            report = DiscoveryReport.from_dict(data["report"])
            expires_at = float(data["expires_at"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring corrupt cached catalog: {e}")
            return None

        return CatalogSnapshot(
            by_source=MappingProxyType(by_source),
            tools=MappingProxyType(self._merge(by_source, DiscoveryReport())),
            report=report,
            expires_at=expires_at,
        )

    def _cached_snapshot_or_none(self) -> CatalogSnapshot | None:
        try:
            return self._read_cached_snapshot()
        except CacheUnavailableError as e:
            logger.warning(f"Tool cache unavailable: {e}")
            return None

    def _fresh_snapshot(self) -> CatalogSnapshot | None:
        """The in-memory or cached snapshot, if it has not expired."""
        if self._snapshot is not None and self._snapshot.is_fresh():
            return self._snapshot
        cached = self._cached_snapshot_or_none()
        if cached is not None and cached.is_fresh():
            return cached
        return None

    def _cache_get(self, key: str) -> Any | None:
        if self.cache_store is None:
            return None
        try:
            return self.cache_store.get(key)
        except CacheUnavailableError as e:
            logger.warning(f"Tool cache unavailable: {e}")
            return None

    def _cache_set(self, key: str, value: Any) -> None:
        if self.cache_store is None:
            return
        try:
            self.cache_store.set(key, value, ttl=self.cache_ttl)
        except CacheUnavailableError as e:
            logger.warning(f"Tool cache unavailable, keeping catalog in memory only: {e}")

    def invalidate(self) -> None:
        """Drop the catalog and per-server cache entries.

        The next read triggers a full discovery.
        """
        self._snapshot = None
        if self.cache_store is None:
            return
        try:
            self.cache_store.delete(CATALOG_CACHE_KEY)
            for server in self.external.server_names():
                self.cache_store.delete(f"{SERVER_CACHE_PREFIX}{server}")
        except CacheUnavailableError as e:
            logger.warning(f"Failed to invalidate tool cache: {e}")
        logger.info("Tool catalog cache invalidated")

    # --- Catalog access ---

    async def get_all_tools(self) -> dict[str, ToolDescriptor]:
        """Get the current catalog.

        Serves the in-memory snapshot while it is fresh, then the persisted
        cache, and only runs discovery when neither is available. If the
        cache store itself is unavailable, discovery runs and its catalog is
        kept in memory only.

        Returns:
            Mapping of tool name to ToolDescriptor
        """
        snapshot = self._snapshot
        if snapshot is not None and snapshot.is_fresh():
            return dict(snapshot.tools)

        try:
            cached = self._read_cached_snapshot()
        except CacheUnavailableError as e:
            logger.warning(f"Tool cache unavailable, discovering into memory: {e}")
            cached = None

        if cached is not None and cached.is_fresh():
            self._snapshot = cached
            return dict(cached.tools)

        await self.refresh()
        return dict(self._snapshot.tools) if self._snapshot else {}

    async def get_tool(self, name: str) -> ToolDescriptor | None:
        tools = await self.get_all_tools()
        return tools.get(name)

    async def has_tool(self, name: str) -> bool:
        return await self.get_tool(name) is not None

    async def get_tools_by_type(self, tool_type: ToolType | str) -> dict[str, ToolDescriptor]:
        """Filter the catalog by tool type."""
        wanted = ToolType(tool_type)
        tools = await self.get_all_tools()
        return {name: tool for name, tool in tools.items() if tool.type is wanted}

    async def get_tools_by_execution_mode(
        self, mode: ExecutionMode | str
    ) -> dict[str, ToolDescriptor]:
        """Filter the catalog by execution mode."""
        wanted = ExecutionMode(mode)
        tools = await self.get_all_tools()
        return {name: tool for name, tool in tools.items() if tool.execution_mode is wanted}

    async def search_tools(self, query: str) -> dict[str, ToolDescriptor]:
        """Case-insensitive substring search over tool names and descriptions."""
        needle = query.lower()
        tools = await self.get_all_tools()
        return {
            name: tool
            for name, tool in tools.items()
            if needle in tool.name.lower() or needle in tool.description.lower()
        }

    async def get_stats(self) -> dict[str, Any]:
        """Count the catalog by type, execution mode, category and source.

        total always equals the sum of by_type and the sum of by_execution_mode.
        """
        tools = await self.get_all_tools()

        by_type = {tool_type.value: 0 for tool_type in ToolType}
        by_mode = {mode.value: 0 for mode in ExecutionMode}
        by_category: dict[str, int] = {}
        by_source: dict[str, int] = {}

        for tool in tools.values():
            by_type[tool.type.value] += 1
            by_mode[tool.execution_mode.value] += 1
            category = tool.category or DEFAULT_CATEGORY
            by_category[category] = by_category.get(category, 0) + 1
            by_source[tool.source] = by_source.get(tool.source, 0) + 1

        return {
            "total": len(tools),
            "by_type": by_type,
            "by_execution_mode": by_mode,
            "by_category": by_category,
            "by_source": by_source,
        }

    # --- Pre-flight validation ---

    async def validate_tool_names(self, names: Iterable[str]) -> list[str]:
        """Return the requested names that are not in the catalog.

        Order of first appearance is kept and duplicates are collapsed.
        """
        tools = await self.get_all_tools()
        missing: list[str] = []
        for name in names:
            if name not in tools and name not in missing:
                missing.append(name)
        return missing

    async def ensure_tools_exist(self, names: Iterable[str]) -> None:
        """Fail fast if any requested tool is unknown.

        Raises:
            UnknownToolsError: Listing every missing name
        """
        missing = await self.validate_tool_names(names)
        if missing:
            logger.info(f"Pre-flight validation failed, unknown tools: {missing}")
            raise UnknownToolsError(missing)
