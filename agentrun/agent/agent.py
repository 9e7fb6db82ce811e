"""
Agent - Top-level agent class.

This is the main entry point for creating and running agents. An Agent
holds the model, tools, instructions and run configuration; each call to
``run`` executes an independent run through AgentExecutor.
"""

from typing import Iterable, Sequence

from agentrun.config import RunConfig
from agentrun.domain import Message
from agentrun.llm.base import Model
from agentrun.runtime import AbortSignal, AgentExecutor, RunHook, RunOutput, StopCondition
from agentrun.runtime.tool_executor import Approver
from agentrun.tools import BaseTool, ToolRegistry


class Agent:
    """
    Agent Configuration Container.

    Holds the configuration for Model, Tools and the run loop.
    Delegates execution to AgentExecutor.

    Examples:
        >>> agent = Agent(
        ...     model=OpenAIModel.from_settings(settings),
        ...     tools=[get_weather],
        ...     instructions="You are a helpful weather assistant.",
        ... )
        >>> output = await agent.run("What's the weather in SF?")
        >>> print(output.response)
    """

    def __init__(
        self,
        model: Model,
        tools: Iterable[BaseTool] | None = None,
        instructions: str | None = None,
        config: RunConfig | None = None,
        stop_conditions: Sequence[StopCondition] | None = None,
        hooks: Sequence[RunHook] | None = None,
        approve: Approver | None = None,
        name: str = "agentrun_agent",
    ):
        self._id = name
        self.model = model
        self.registry = ToolRegistry(tools)
        self.instructions = instructions
        self.config = config or RunConfig()
        self.stop_conditions = list(stop_conditions or [])
        self.hooks = list(hooks or [])
        self.approve = approve

    @property
    def id(self) -> str:
        """Unique identifier for the agent."""
        return self._id

    @property
    def tools(self) -> list[BaseTool]:
        return list(self.registry)

    def build_messages(
        self,
        prompt: str | None = None,
        messages: list[Message] | None = None,
    ) -> list[Message]:
        """
        Build the initial history of a run.

        Exactly one of ``prompt`` and ``messages`` must be given. The
        instructions, if any, come first as a system message.
        """
        if (prompt is None) == (messages is None):
            raise ValueError("Provide exactly one of 'prompt' or 'messages'")

        history: list[Message] = []
        if self.instructions:
            history.append(Message.system(self.instructions))
        if prompt is not None:
            history.append(Message.user(prompt))
        else:
            history.extend(messages)
        return history

    async def run(
        self,
        prompt: str | None = None,
        *,
        messages: list[Message] | None = None,
        abort_signal: AbortSignal | None = None,
    ) -> RunOutput:
        """
        Execute one run.

        Args:
            prompt: User message text
            messages: Full initial history (instead of ``prompt``)
            abort_signal: Cancels the run when aborted

        Returns:
            RunOutput with the final state and status
        """
        history = self.build_messages(prompt, messages)
        executor = AgentExecutor(
            model=self.model,
            tools=self.registry,
            config=self.config,
            stop_conditions=self.stop_conditions,
            hooks=self.hooks,
            approve=self.approve,
        )
        return await executor.execute(history, abort_signal=abort_signal)


__all__ = ["Agent"]
