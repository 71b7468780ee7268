"""Agent router - classify a request, pick agents, plan and run a workflow.

The pipeline is a compiled LangGraph state machine:

    START → classify ─┬→ select → plan ──┬→ execute → END
                      └→ load_workflow ──┘

``load_workflow`` is taken when the request names a predefined workflow.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Literal, Optional, Union

from langgraph.graph import END, START, StateGraph

from agentOrchestrator.agents.registry import AgentRegistry
from agentOrchestrator.agents.schema import AgentDefinition, ExecutionMode
from agentOrchestrator.utils.error_handler import NoAgentAvailableError
from agentOrchestrator.utils.logging_utils import log_route_decision
from agentOrchestrator.workflow.engine import WorkflowEngine
from agentOrchestrator.workflow.schema import RunOptions, Workflow, WorkflowStep, WorkflowType

from .classifier import TaskClassifier, TaskType
from .schema import RouteResult, UserRequest
from .state import RouteState

LOGGER = logging.getLogger(__name__)

# Task type -> agent names, in step order
TASK_AGENTS: Dict[TaskType, List[str]] = {
    TaskType.LITERATURE: ["literature-agent"],
    TaskType.WRITING: ["writing-agent"],
    TaskType.ANALYSIS: ["analysis-agent"],
    TaskType.REVIEW: ["review-agent"],
    TaskType.SUBMISSION: ["submission-agent"],
    TaskType.COMPREHENSIVE: ["literature-agent", "writing-agent", "review-agent"],
}


class AgentRouter:
    """Routes user requests to agents and executes the resulting workflow.

    Args:
        registry: Agent registry to select from
        engine: Workflow engine that runs the planned workflow
        classifier: Task classifier (keyword-only when omitted)
    """

    def __init__(
        self,
        registry: AgentRegistry,
        engine: WorkflowEngine,
        classifier: Optional[TaskClassifier] = None,
    ):
        self.registry = registry
        self.engine = engine
        self.classifier = classifier or TaskClassifier()
        self._graph = self._build_graph()

    # ========== Public API ==========

    async def route(self, request: Union[UserRequest, str]) -> RouteResult:
        """Classify, select, plan and execute.

        Raises:
            NoAgentAvailableError: No registered agent handles the task type
            UnknownAgentError: ``options["agents"]`` names an unregistered agent
            WorkflowNotFoundError: ``request.workflow`` is not registered
        """
        if isinstance(request, str):
            request = UserRequest(text=request)

        LOGGER.info(f"Routing request: {request.text[:50]}")
        state: RouteState = await self._graph.ainvoke(
            {"request": request, "started_at": time.monotonic()},
            config={"run_name": "agent-router"},
        )

        execution_time = time.monotonic() - state["started_at"]
        LOGGER.info(f"Routing complete in {execution_time:.3f}s")
        return RouteResult(
            task_type=state["task_type"],
            agents=[agent.name for agent in state["agents"]],
            result=state["result"],
            execution_time=execution_time,
        )

    async def classify(self, request: UserRequest) -> TaskType:
        return await self.classifier.classify(request)

    def select_agents(self, task_type: TaskType, request: Optional[UserRequest] = None) -> List[AgentDefinition]:
        """Pick the agents for a task type.

        Explicit ``options["agents"]`` wins. Otherwise the task table is used,
        dropping unregistered names, with a capability/skill lookup as fallback.

        Raises:
            NoAgentAvailableError: Selection is empty
            UnknownAgentError: An explicitly requested agent is not registered
        """
        explicit = (request.options.get("agents") if request is not None else None) or []
        if explicit:
            return [self.registry.require(name) for name in dict.fromkeys(explicit)]

        agents = [a for a in (self.registry.get(name) for name in TASK_AGENTS.get(task_type, [])) if a]
        if not agents:
            agents = self.registry.find(task_type.value) or self.registry.get_by_skill(task_type.value)
        if not agents:
            raise NoAgentAvailableError(task_type.value)
        return agents

    def build_workflow(
        self,
        agents: List[AgentDefinition],
        task_type: TaskType,
        request: UserRequest,
    ) -> Workflow:
        """Shape a workflow from the selected agents.

        One agent gives a single-step sequential workflow. When agents declare
        dependencies on each other (by name or by something another agent
        provides) the result is a DAG. Without dependencies, any agent whose
        execution mode is ``sequential`` orders the run in selection order;
        otherwise all agents run in parallel.
        """
        suppliers: Dict[str, set] = {}
        for agent in agents:
            suppliers.setdefault(agent.name, set()).add(agent.name)
            for artifact in agent.provides:
                suppliers.setdefault(artifact, set()).add(agent.name)

        inputs = {"text": request.text, "task_type": task_type.value, **(request.options.get("inputs") or {})}
        steps = []
        for agent in agents:
            deps = {s for token in agent.dependencies for s in suppliers.get(token, ()) if s != agent.name}
            steps.append(
                WorkflowStep(
                    id=agent.name,
                    agent=agent.name,
                    action=task_type.value,
                    inputs=inputs,
                    dependencies=frozenset(deps),
                )
            )

        if len(steps) == 1:
            mode = WorkflowType.SEQUENTIAL
        elif any(step.dependencies for step in steps):
            mode = WorkflowType.DAG
        elif any(agent.execution.mode == ExecutionMode.SEQUENTIAL for agent in agents):
            mode = WorkflowType.SEQUENTIAL
        else:
            mode = WorkflowType.PARALLEL

        return Workflow(
            name=f"route-{task_type.value}",
            type=mode,
            steps=tuple(steps),
            description=request.text[:100],
        )

    # ========== Graph ==========

    def _build_graph(self):
        graph = StateGraph(RouteState)

        graph.add_node("classify", self._classify_node)
        graph.add_node("select", self._select_node)
        graph.add_node("plan", self._plan_node)
        graph.add_node("load_workflow", self._load_workflow_node)
        graph.add_node("execute", self._execute_node)

        graph.add_edge(START, "classify")
        graph.add_conditional_edges(
            "classify",
            self._classify_route,
            {
                "select": "select",
                "load_workflow": "load_workflow",
            },
        )
        graph.add_edge("select", "plan")
        graph.add_edge("plan", "execute")
        graph.add_edge("load_workflow", "execute")
        graph.add_edge("execute", END)

        return graph.compile()

    @staticmethod
    def _classify_route(state: RouteState) -> Literal["select", "load_workflow"]:
        return "load_workflow" if state["request"].workflow else "select"

    async def _classify_node(self, state: RouteState) -> Dict[str, Any]:
        return {"task_type": await self.classify(state["request"])}

    async def _select_node(self, state: RouteState) -> Dict[str, Any]:
        return {"agents": self.select_agents(state["task_type"], state["request"])}

    async def _plan_node(self, state: RouteState) -> Dict[str, Any]:
        workflow = self.build_workflow(state["agents"], state["task_type"], state["request"])
        log_route_decision(LOGGER, state["task_type"].value, workflow.agents(), workflow.type.value)
        return {"workflow": workflow}

    async def _load_workflow_node(self, state: RouteState) -> Dict[str, Any]:
        workflow = self.engine.resolve(state["request"].workflow)
        agents = [self.registry.require(name) for name in workflow.agents()]
        log_route_decision(LOGGER, state["task_type"].value, workflow.agents(), workflow.type.value)
        return {"workflow": workflow, "agents": agents}

    async def _execute_node(self, state: RouteState) -> Dict[str, Any]:
        request = state["request"]
        options = request.options
        run_options = RunOptions(
            max_concurrency=options.get("max_concurrency"),
            continue_on_error=options.get("continue_on_error"),
            timeout=options.get("timeout"),
            cancel_event=options.get("cancel_event"),
        )
        result = await self.engine.execute(
            state["workflow"],
            input_data={"text": request.text, "task_type": state["task_type"].value},
            options=run_options,
        )
        return {"result": result}
