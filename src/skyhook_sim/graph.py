from __future__ import annotations

from collections import deque
import json
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Union
import logging

import pandas as pd


logger = logging.getLogger(__name__)

NodeId = str

# Returned by shortest_hops_to_any when no target is reachable.
NOT_FOUND = -1


# ---------------------------- ReachabilityGraph ----------------------------


class ReachabilityGraph:
    """Directed jump graph stored as an arena of node records.

    Every id ever seen (as a system or as a neighbor) gets an integer
    index; adjacency is a list of neighbor indices per node, followed only
    in the stored direction. `systems` is the subset of ids eligible as
    random start nodes and targets.
    """

    def __init__(self) -> None:
        self._ids: List[NodeId] = []
        self._index: Dict[NodeId, int] = {}
        self._adj: List[List[int]] = []
        self._systems: List[NodeId] = []
        self._system_set: Set[NodeId] = set()

    # -- construction --

    def _intern(self, node: NodeId) -> int:
        idx = self._index.get(node)
        if idx is None:
            idx = len(self._ids)
            self._ids.append(node)
            self._index[node] = idx
            self._adj.append([])
        return idx

    def add_system(self, node: NodeId) -> None:
        node = str(node)
        self._intern(node)
        if node not in self._system_set:
            self._system_set.add(node)
            self._systems.append(node)

    def add_edge(self, src: NodeId, dst: NodeId) -> None:
        """Add the directed edge src -> dst (duplicates ignored)."""
        s = self._intern(str(src))
        d = self._intern(str(dst))
        if d not in self._adj[s]:
            self._adj[s].append(d)

    @classmethod
    def from_mappings(
        cls,
        systems: Iterable[NodeId],
        connections: Mapping[NodeId, Iterable[NodeId]],
    ) -> "ReachabilityGraph":
        g = cls()
        for node in systems:
            g.add_system(node)
        for src, neighbors in connections.items():
            for dst in neighbors:
                g.add_edge(src, dst)
        return g

    # -- queries --

    @property
    def systems(self) -> List[NodeId]:
        return list(self._systems)

    def __len__(self) -> int:
        return len(self._systems)

    def __contains__(self, node: object) -> bool:
        return node in self._index

    def node_count(self) -> int:
        """All interned nodes, including neighbors outside `systems`."""
        return len(self._ids)

    def neighbors(self, node: NodeId) -> List[NodeId]:
        idx = self._index.get(node)
        if idx is None:
            return []
        return [self._ids[j] for j in self._adj[idx]]

    def shortest_hops_to_any(self, start: NodeId, targets: Iterable[NodeId]) -> int:
        """Hop count from `start` to the nearest node in `targets` (BFS).

        Returns 0 if `start` is a target and NOT_FOUND if none is reachable.
        """
        target_set = targets if isinstance(targets, (set, frozenset)) else set(targets)
        if start in target_set:
            return 0

        s = self._index.get(start)
        if s is None or not target_set:
            return NOT_FOUND

        target_idx = {self._index[t] for t in target_set if t in self._index}
        if not target_idx:
            return NOT_FOUND

        visited = [False] * len(self._ids)
        visited[s] = True
        queue = deque([(s, 0)])
        while queue:
            cur, hops = queue.popleft()
            if cur in target_idx:
                return hops
            for nxt in self._adj[cur]:
                if not visited[nxt]:
                    visited[nxt] = True
                    queue.append((nxt, hops + 1))
        return NOT_FOUND


# ---------------------------- Loaders ----------------------------


def _cell_text(v: object) -> str:
    """Missing and null cells read as an empty string."""
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return ""
    return str(v)


def read_records(path: Union[str, Path]) -> List[Dict[str, str]]:
    """Read a JSON array of objects or a CSV file into string-valued records."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".json":
        # object dtype keeps ids as written; inference would turn an int
        # column with a gap into floats ("30000001.0").
        data = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{p}: expected a JSON array of objects")
        df = pd.DataFrame(data, dtype=object)
    elif suffix == ".csv":
        df = pd.read_csv(p, dtype=str, keep_default_na=False)
    else:
        raise ValueError(f"Unsupported record file type: {p.suffix} (expected .json or .csv)")

    records: List[Dict[str, str]] = []
    for row in df.to_dict(orient="records"):
        records.append({str(k): _cell_text(v) for k, v in row.items()})
    return records


def load_systems(
    rows: Iterable[Mapping[str, object]],
    *,
    field: str = "security",
    value: str = "0.0",
    id_field: str = "id",
    predicate: Optional[Callable[[Mapping[str, object]], bool]] = None,
) -> List[NodeId]:
    """Ids of rows selected by `predicate` (default: str(row[field]) == value).

    Order of first appearance is preserved; duplicates are dropped.
    """
    if predicate is None:
        def predicate(row: Mapping[str, object]) -> bool:
            return str(row.get(field)) == value

    out: List[NodeId] = []
    seen: Set[NodeId] = set()
    for row in rows:
        if not predicate(row):
            continue
        node = _cell_text(row.get(id_field))
        if node and node not in seen:
            out.append(node)
            seen.add(node)
    return out


def load_connections(
    rows: Iterable[Mapping[str, object]],
    *,
    id_field: str = "systemId",
    neighbors_field: str = "jumpNodes",
    delimiter: str = ":",
) -> Dict[NodeId, List[NodeId]]:
    """Adjacency from records listing delimiter-separated neighbor ids."""
    connections: Dict[NodeId, List[NodeId]] = {}
    for row in rows:
        raw = row.get(neighbors_field)
        neighbors = [] if raw is None else [n.strip() for n in str(raw).split(delimiter)]
        node = _cell_text(row.get(id_field))
        if not node:
            logger.debug("Skipping connection record without %r: %r", id_field, row)
            continue
        connections[node] = [n for n in neighbors if n]
    return connections


def load_graph(
    systems_path: Union[str, Path],
    connections_path: Union[str, Path],
    *,
    field: str = "security",
    value: str = "0.0",
    id_field: str = "id",
    conn_id_field: str = "systemId",
    neighbors_field: str = "jumpNodes",
    delimiter: str = ":",
) -> ReachabilityGraph:
    """Build a ReachabilityGraph from a systems file and a connections file."""
    systems = load_systems(read_records(systems_path), field=field, value=value, id_field=id_field)
    connections = load_connections(
        read_records(connections_path),
        id_field=conn_id_field,
        neighbors_field=neighbors_field,
        delimiter=delimiter,
    )
    graph = ReachabilityGraph.from_mappings(systems, connections)
    logger.info(
        "Loaded graph: %d eligible systems, %d nodes total, %d adjacency records",
        len(graph), graph.node_count(), len(connections),
    )
    if not systems:
        logger.warning("No systems matched %s == %r in %s", field, value, systems_path)
    return graph
