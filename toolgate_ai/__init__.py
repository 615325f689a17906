"""Toolgate-AI.

This package routes conversational turns between a language model and a set of
tools, with side-effecting tool calls gated behind an asynchronous approval
step.

High-level architecture
-----------------------

Everything that happens in a conversation is a *message* on a durable bus:

- **Turns**: role-tagged content appended to a conversation's model-facing
  context (user input, assistant output, tool results).
- **Tool call requests**: a single tool invocation proposed by the model.
- **Approval responses**: the decision (approved/rejected) on a tool call.
- **Errors**: out-of-band diagnostics such as model provider failures.

Messages are persisted before they are dispatched, processed strictly in order
per conversation, and replayed after a restart if they were never marked
handled.

Core subpackages
----------------

- ``toolgate_ai.agent_core``:

  - Message schemas.
  - The keyed durable store (in-memory and SQL).
  - The message queue, the agent and the tool runner.
  - Approval policy and approvers.
  - Tool contracts and the model client abstraction.

- ``toolgate_ai.core``:

  - Settings and logging configuration.

Typical workflow
----------------

Most integrations should use ``toolgate_ai.agent_core.service.ConversationService``:

1. Build the service (``toolgate_ai.agent_core.factory.build_service``).
2. ``start()`` it to replay unfinished work.
3. Feed user input with ``submit_turn``.
4. Deliver human decisions with ``resolve_approval``.
"""
