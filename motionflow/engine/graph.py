"""
Workflow Engine - directed-graph executor with suspend/resume

Runs named async node functions over a shared state record. Each node returns
a tagged result:

    Continue(update)          merge ``update`` into the state and follow the edges
    Suspend(payload, update)  merge ``update``, store a checkpoint, return to the caller

A plain dict (or None) returned by a node counts as ``Continue``. State
updates are merged field by field according to a ``MergePolicy`` table.

Usage:
    graph = WorkflowGraph(MergePolicy({"metadata": SHALLOW_MERGE}))
    graph.add_node("ask", ask_node)
    graph.add_node("answer", answer_node)
    graph.add_edge(START, "ask")
    graph.add_edge("ask", "answer")
    graph.add_edge("answer", END)
    app = graph.compile()

    first = await app.ainvoke({"topic": "..."}, thread_id="t1")
    if INTERRUPT_KEY in first:
        final = await app.ainvoke(ResumeCommand(resume={"q1": "A"}), thread_id="t1")
"""
import copy
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from motionflow.engine.checkpoint import Checkpoint, CheckpointStore, InMemoryCheckpointStore
from motionflow.utils import get_logger
from motionflow.utils.exceptions import SessionNotFoundError, WorkflowError

logger = get_logger(__name__)

START = "__start__"
END = "__end__"
INTERRUPT_KEY = "__interrupt__"
RESUME_KEY = "resume_value"

OVERWRITE = "overwrite"
SHALLOW_MERGE = "shallow_merge"


# =============================================================================
# Node results and commands
# =============================================================================

@dataclass
class Continue:
    """Node finished normally; ``update`` is merged into the running state."""
    update: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Suspend:
    """Node pauses the run; ``payload`` is returned to the caller."""
    payload: Any = None
    update: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResumeCommand:
    """
    Resume a suspended run.

    Attributes:
        resume: Value exposed to the resumed nodes as ``state["resume_value"]``
        update: Partial state merged into the checkpointed state before resuming
    """
    resume: Any = None
    update: Optional[Dict[str, Any]] = None


def suspend(payload: Any, **update: Any) -> Suspend:
    """Build a ``Suspend`` result; keyword arguments become the state update."""
    return Suspend(payload=payload, update=update)


NodeResult = Union[Continue, Suspend, Dict[str, Any], None]
NodeFn = Callable[[Dict[str, Any]], Union[NodeResult, Awaitable[NodeResult]]]
Selector = Callable[[Dict[str, Any]], str]


# =============================================================================
# Merge policy
# =============================================================================

class MergePolicy:
    """
    Per-field merge rules for state updates.

    ``overwrite`` (the default for unlisted fields) replaces the old value
    unless the new value is None. ``shallow_merge`` merges dict values key by key.
    """

    def __init__(self, policies: Optional[Dict[str, str]] = None):
        policies = dict(policies or {})
        for name, policy in policies.items():
            if policy not in (OVERWRITE, SHALLOW_MERGE):
                raise WorkflowError(f"Unknown merge policy '{policy}' for field '{name}'")
        self.policies = policies

    def policy_for(self, name: str) -> str:
        return self.policies.get(name, OVERWRITE)

    def apply(self, state: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Return a new state with ``update`` merged into ``state``."""
        merged = dict(state)
        for name, value in update.items():
            if self.policy_for(name) == SHALLOW_MERGE:
                if value is None:
                    continue
                if not isinstance(value, dict):
                    raise WorkflowError(
                        f"Field '{name}' is merged and needs a mapping",
                        {"got": type(value).__name__},
                    )
                merged[name] = {**(merged.get(name) or {}), **value}
            elif value is not None or name not in merged:
                merged[name] = value
        return merged


# =============================================================================
# Graph definition
# =============================================================================

class WorkflowGraph:
    """
    Mutable graph definition; ``compile`` turns it into a runnable workflow.

    Attributes:
        merge_policy: Field merge rules applied to every node update
        nodes: Node name to node function
        edges: Unconditional edges (source to target)
        branches: Conditional edges (source to selector and optional path map)
    """

    def __init__(self, merge_policy: Optional[MergePolicy] = None):
        self.merge_policy = merge_policy or MergePolicy()
        self.nodes: Dict[str, NodeFn] = {}
        self.edges: Dict[str, str] = {}
        self.branches: Dict[str, tuple] = {}
        self.entry_point: Optional[str] = None

    def add_node(self, name: str, fn: NodeFn) -> "WorkflowGraph":
        if name in (START, END):
            raise WorkflowError(f"'{name}' is a reserved node name")
        if name in self.nodes:
            raise WorkflowError(f"Node '{name}' already exists")
        self.nodes[name] = fn
        return self

    def add_edge(self, source: str, target: str) -> "WorkflowGraph":
        if source == START:
            return self.set_entry_point(target)
        self._check_free(source)
        self.edges[source] = target
        return self

    def add_conditional_edges(
        self,
        source: str,
        selector: Selector,
        path_map: Optional[Dict[str, str]] = None,
    ) -> "WorkflowGraph":
        """
        Route from ``source`` by calling ``selector(state)``.

        The selector returns a node name or END, or a key of ``path_map``.
        """
        self._check_free(source)
        self.branches[source] = (selector, dict(path_map) if path_map else None)
        return self

    def set_entry_point(self, name: str) -> "WorkflowGraph":
        self.entry_point = name
        return self

    def _check_free(self, source: str) -> None:
        if source in self.edges or source in self.branches:
            raise WorkflowError(f"Node '{source}' already has an outgoing edge")

    def compile(
        self,
        checkpoint_store: Optional[CheckpointStore] = None,
        on_node_error: Optional[Callable[[str, Exception, Dict[str, Any]], Dict[str, Any]]] = None,
        after_node: Optional[Callable[[str, Dict[str, Any]], Any]] = None,
        max_steps: int = 50,
    ) -> "CompiledWorkflow":
        """
        Validate the graph and build a runnable workflow.

        Args:
            checkpoint_store: Where suspended runs are kept (in-memory by default)
            on_node_error: Turns an exception raised by a node into a state update;
                without it the exception is re-raised as WorkflowError
            after_node: Called (and awaited if async) after every node transition
            max_steps: Upper bound on node executions per invocation

        Raises:
            WorkflowError: If the graph references unknown nodes or has dangling nodes
        """
        if self.entry_point is None:
            raise WorkflowError("Graph has no entry point")
        known = set(self.nodes)
        if self.entry_point not in known:
            raise WorkflowError(f"Entry point '{self.entry_point}' is not a node")

        for source, target in self.edges.items():
            if source not in known:
                raise WorkflowError(f"Edge source '{source}' is not a node")
            if target != END and target not in known:
                raise WorkflowError(f"Edge target '{target}' is not a node")
        for source, (_, path_map) in self.branches.items():
            if source not in known:
                raise WorkflowError(f"Branch source '{source}' is not a node")
            for target in (path_map or {}).values():
                if target != END and target not in known:
                    raise WorkflowError(f"Branch target '{target}' is not a node")

        dangling = sorted(known - set(self.edges) - set(self.branches))
        if dangling:
            raise WorkflowError("Nodes without outgoing edges", {"nodes": dangling})

        return CompiledWorkflow(
            nodes=dict(self.nodes),
            edges=dict(self.edges),
            branches=dict(self.branches),
            entry_point=self.entry_point,
            merge_policy=self.merge_policy,
            checkpoint_store=checkpoint_store if checkpoint_store is not None else InMemoryCheckpointStore(),
            on_node_error=on_node_error,
            after_node=after_node,
            max_steps=max_steps,
        )


# =============================================================================
# Execution
# =============================================================================

class CompiledWorkflow:
    """Runnable workflow produced by ``WorkflowGraph.compile``."""

    def __init__(
        self,
        nodes: Dict[str, NodeFn],
        edges: Dict[str, str],
        branches: Dict[str, tuple],
        entry_point: str,
        merge_policy: MergePolicy,
        checkpoint_store: CheckpointStore,
        on_node_error=None,
        after_node=None,
        max_steps: int = 50,
    ):
        self.nodes = nodes
        self.edges = edges
        self.branches = branches
        self.entry_point = entry_point
        self.merge_policy = merge_policy
        self.checkpoint_store = checkpoint_store
        self.on_node_error = on_node_error
        self.after_node = after_node
        self.max_steps = max_steps

    async def ainvoke(self, payload: Union[Dict[str, Any], ResumeCommand], thread_id: str) -> Dict[str, Any]:
        """
        Start a run, or resume a suspended one when ``payload`` is a ResumeCommand.

        Args:
            payload: Initial state or ResumeCommand
            thread_id: Run identifier under which checkpoints are stored

        Returns:
            Final state, or the state at the suspend point plus
            ``"__interrupt__": [{"value": payload}]``

        Raises:
            SessionNotFoundError: If resuming and no checkpoint exists for ``thread_id``
            WorkflowError: On routing errors, step overflow or unhandled node errors
        """
        if isinstance(payload, ResumeCommand):
            checkpoint = self.checkpoint_store.pop(thread_id)
            if checkpoint is None:
                raise SessionNotFoundError(
                    "No suspended run to resume", {"thread_id": thread_id}
                )
            state = self.merge_policy.apply(checkpoint.state, payload.update or {})
            state[RESUME_KEY] = payload.resume
            logger.info(f"[engine] Resuming thread {thread_id} at '{checkpoint.next_node}'")
            return await self._run(state, checkpoint.next_node, thread_id)

        state = self.merge_policy.apply({}, dict(payload))
        return await self._run(state, self.entry_point, thread_id)

    def has_checkpoint(self, thread_id: str) -> bool:
        return self.checkpoint_store.has(thread_id)

    async def _run(self, state: Dict[str, Any], current: str, thread_id: str) -> Dict[str, Any]:
        steps = 0
        while current != END:
            steps += 1
            if steps > self.max_steps:
                raise WorkflowError(
                    f"Run exceeded {self.max_steps} steps", {"thread_id": thread_id, "node": current}
                )

            result = await self._execute(current, state)

            if isinstance(result, Suspend):
                state = self.merge_policy.apply(state, result.update or {})
                next_node = self._next(current, state)
                self.checkpoint_store.put(Checkpoint(
                    thread_id=thread_id,
                    next_node=next_node,
                    state=copy.deepcopy(state),
                    interrupt_value=result.payload,
                ))
                await self._after(current, state)
                logger.info(f"[engine] Thread {thread_id} suspended at '{current}'")
                output = dict(state)
                output[INTERRUPT_KEY] = [{"value": result.payload}]
                return output

            update = result.update if isinstance(result, Continue) else result
            if update is None:
                update = {}
            if not isinstance(update, dict):
                raise WorkflowError(
                    f"Node '{current}' returned an unsupported result",
                    {"type": type(update).__name__},
                )
            state = self.merge_policy.apply(state, update)
            await self._after(current, state)
            current = self._next(current, state)

        return state

    async def _execute(self, name: str, state: Dict[str, Any]) -> NodeResult:
        try:
            result = self.nodes[name](dict(state))
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            if self.on_node_error is None:
                raise WorkflowError(f"Node '{name}' failed: {e}", {"node": name}) from e
            logger.error(f"[engine] Node '{name}' raised {type(e).__name__}: {e}")
            return Continue(self.on_node_error(name, e, state) or {})

    async def _after(self, name: str, state: Dict[str, Any]) -> None:
        if self.after_node is None:
            return
        result = self.after_node(name, state)
        if inspect.isawaitable(result):
            await result

    def _next(self, current: str, state: Dict[str, Any]) -> str:
        if current in self.edges:
            return self.edges[current]

        selector, path_map = self.branches[current]
        choice = selector(state)
        target = path_map.get(choice, choice) if path_map else choice
        if target != END and target not in self.nodes:
            raise WorkflowError(
                f"Branch from '{current}' chose unknown target '{target}'",
                {"choice": choice},
            )
        return target
