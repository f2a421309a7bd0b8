"""Code-synthesis collaborator client (Anthropic with optional OpenAI fallback).

Every call is a forced tool-use call whose input schema is a pydantic model;
the tool payload is validated against the same model before anything else
sees it, so callers only ever receive typed results.
"""

import json
import logging
import os
from typing import Any, Literal, Optional, TypeVar

import openai
from anthropic import Anthropic
from pydantic import BaseModel, ValidationError

from intelligent_modifier.agents import prompts
from intelligent_modifier.agents.exceptions import ModifierError, SynthesisFailure
from intelligent_modifier.models.change_models import UsageStats
from intelligent_modifier.models.synthesis_models import (
    ComponentPlan,
    DesignTokenRewrite,
    FileSelection,
    NodeEditBatch,
    RegeneratedFiles,
    ScopeDecision,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_FALLBACK_MODEL = "gpt-4o-mini"
MAX_API_TOKENS = 8192  # Max tokens for a generation response
MAX_CLASSIFY_TOKENS = 2048  # Max tokens for a classification response

T = TypeVar("T", bound=BaseModel)


class SynthesisClient:
    """Calls the LLM provider chain and returns validated pydantic models."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
        openai_api_key: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model ID to use for synthesis.
            llm_provider: "auto", "anthropic" or "openai".
            llm_fallback_provider: Provider tried when the primary call fails.
            allow_fallback: Whether the fallback provider may be used at all.
            openai_api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.

        Raises:
            ModifierError: If no API key is found or the provider config is invalid.
        """
        self.model: str = model
        self.api_key: str | None = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.openai_api_key: str | None = openai_api_key or os.getenv("OPENAI_API_KEY")
        self.llm_provider: Literal["anthropic", "openai", "auto"] = "auto"
        self.llm_fallback_provider: str | None = None
        self.allow_fallback: bool = False
        self.usage = UsageStats()
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None

        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(api_key=self.openai_api_key)

        if not (self._anthropic_client or self._openai_client):
            raise ModifierError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY, or OPENAI_API_KEY env vars."
            )
        self.set_provider_config(
            llm_provider=llm_provider,
            llm_fallback_provider=llm_fallback_provider,
            allow_fallback=allow_fallback,
        )

    def _normalize_provider(self, value: str) -> Literal["anthropic", "openai", "auto"]:
        if value not in {"auto", "anthropic", "openai"}:
            raise ModifierError(f"Unsupported provider: {value}")
        return value

    def set_provider_config(
        self,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
    ) -> None:
        self.llm_provider = self._normalize_provider(llm_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        self.allow_fallback = bool(allow_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise ModifierError("No Anthropic API key found for --llm-provider=anthropic.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise ModifierError("No OpenAI API key found for --llm-provider=openai.")
        if self.allow_fallback and self.llm_fallback_provider == "anthropic" and self._anthropic_client is None:
            raise ModifierError("Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set.")
        if self.allow_fallback and self.llm_fallback_provider == "openai" and self._openai_client is None:
            raise ModifierError("Fallback provider requested as openai but OPENAI_API_KEY is not set.")

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_FALLBACK_MODEL
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            if self.llm_fallback_provider != chain[0]:
                chain.append(self.llm_fallback_provider)
        return chain

    def _get_tool_schema(
        self,
        tool_name: str,
        description: str,
        schema_model: type[BaseModel],
    ) -> dict[str, Any]:
        return {
            "name": tool_name,
            "description": description,
            "input_schema": schema_model.model_json_schema(),
        }

    def _get_openai_tool_schema(self, schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema.get("description", ""),
                "parameters": schema.get("input_schema", {}),
            },
        }

    def invoke(
        self,
        tool_name: str,
        description: str,
        prompt: str,
        schema_model: type[T],
        max_tokens: int = MAX_API_TOKENS,
    ) -> T:
        """Run one forced tool call and validate its payload.

        Args:
            tool_name: Name of the tool the model must call.
            description: Tool description shown to the model.
            prompt: User prompt.
            schema_model: Pydantic model used as input schema and validator.
            max_tokens: Response token budget.

        Returns:
            Validated instance of ``schema_model``.

        Raises:
            SynthesisFailure: If every provider fails or the payload is invalid.
        """
        tool_schema = self._get_tool_schema(tool_name, description, schema_model)
        providers = self._provider_chain()
        response = None
        used_provider = ""
        last_error: Exception | None = None

        for index, provider in enumerate(providers):
            try:
                response = self._call_provider(provider, tool_schema, prompt, max_tokens)
                used_provider = provider
                break
            except Exception as error:
                last_error = error
                logger.warning("%s call via %s failed: %s", tool_name, provider, error)
                if index >= len(providers) - 1 or not self.allow_fallback:
                    break

        if response is None:
            raise SynthesisFailure(f"Failed to call LLM for {tool_name}: {last_error}") from last_error

        self._record_usage(response, used_provider)
        if used_provider == "openai":
            payload = self._parse_openai_tool_payload(response)
        else:
            payload = self._parse_anthropic_tool_payload(response, tool_name)

        try:
            return schema_model.model_validate(payload)
        except ValidationError as exc:
            raise SynthesisFailure(f"{tool_name} returned an invalid payload: {exc}") from exc

    def _call_provider(
        self,
        provider: str,
        tool_schema: dict[str, Any],
        prompt: str,
        max_tokens: int,
    ) -> Any:
        if provider == "anthropic":
            if not self._anthropic_client:
                raise SynthesisFailure("Anthropic client unavailable")
            return self._anthropic_client.messages.create(
                model=self._resolve_model("anthropic"),
                max_tokens=max_tokens,
                tools=[tool_schema],
                tool_choice={"type": "tool", "name": tool_schema["name"]},
                messages=[{"role": "user", "content": prompt}],
            )
        if not self._openai_client:
            raise SynthesisFailure("OpenAI client unavailable")
        return self._openai_client.chat.completions.create(
            model=self._resolve_model("openai"),
            max_tokens=max_tokens,
            tools=[self._get_openai_tool_schema(tool_schema)],
            tool_choice={"type": "function", "function": {"name": tool_schema["name"]}},
            messages=[{"role": "user", "content": prompt}],
        )

    def _parse_anthropic_tool_payload(self, response: Any, tool_name: str) -> dict[str, Any]:
        for block in response.content:
            if block.type == "tool_use" and block.name == tool_name:
                if not isinstance(block.input, dict):
                    raise SynthesisFailure(f"{tool_name} input was not a JSON object")
                return block.input
        raise SynthesisFailure(f"No {tool_name} tool_use block found in response")

    def _parse_openai_tool_payload(self, response: Any) -> dict[str, Any]:
        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None)
        if not tool_calls:
            raise SynthesisFailure("No tool call found in OpenAI response")
        call = tool_calls[0]
        if getattr(call, "type", "function") != "function":
            raise SynthesisFailure("OpenAI tool call type is not function")
        try:
            args = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as exc:
            raise SynthesisFailure(f"OpenAI tool arguments were not valid JSON: {exc}") from exc
        if not isinstance(args, dict):
            raise SynthesisFailure("OpenAI tool arguments were not a valid JSON object")
        return args

    def _record_usage(self, response: Any, provider: str) -> None:
        usage = getattr(response, "usage", None)
        if usage is None:
            self.usage.add(0, 0)
            return
        if provider == "openai":
            input_tokens = getattr(usage, "prompt_tokens", 0)
            output_tokens = getattr(usage, "completion_tokens", 0)
        else:
            input_tokens = getattr(usage, "input_tokens", 0)
            output_tokens = getattr(usage, "output_tokens", 0)
        try:
            self.usage.add(int(input_tokens or 0), int(output_tokens or 0))
        except (TypeError, ValueError):
            self.usage.add(0, 0)

    # ------------------------------------------------------------------
    # Typed operations
    # ------------------------------------------------------------------

    def decide_scope(
        self,
        request: str,
        project_summary: str,
        history_summary: str,
        compact_tree: str,
        project_description: Optional[str] = None,
    ) -> ScopeDecision:
        prompt = prompts.classification_prompt(
            request, project_summary, history_summary, compact_tree, project_description
        )
        return self.invoke(
            "select_modification_scope",
            "Select how a modification request should be applied",
            prompt,
            ScopeDecision,
            max_tokens=MAX_CLASSIFY_TOKENS,
        )

    def propose_node_edits(
        self,
        request: str,
        file_path: str,
        file_content: str,
        node_snippets: list[tuple[str, str]],
        style: dict[str, str],
    ) -> NodeEditBatch:
        prompt = prompts.node_edit_prompt(request, file_path, file_content, node_snippets, style)
        return self.invoke(
            "edit_target_nodes",
            "Replacement code for specific JSX nodes",
            prompt,
            NodeEditBatch,
        )

    def plan_component(
        self,
        request: str,
        component_name: Optional[str],
        component_type: str,
        project_summary: str,
        routing_file: Optional[tuple[str, str]],
        style: dict[str, str],
    ) -> ComponentPlan:
        prompt = prompts.component_prompt(
            request, component_name, component_type, project_summary, routing_file, style
        )
        return self.invoke(
            "create_component",
            "A new component or page plus its integration plan",
            prompt,
            ComponentPlan,
        )

    def rewrite_design_tokens(
        self,
        request: str,
        design_description: Optional[str],
        token_config: tuple[str, str],
        stylesheet: tuple[str, str],
        token_hint: str,
    ) -> DesignTokenRewrite:
        prompt = prompts.design_token_prompt(
            request, design_description, token_config, stylesheet, token_hint
        )
        return self.invoke(
            "rewrite_design_tokens",
            "Complete rewrites of the token config and global stylesheet",
            prompt,
            DesignTokenRewrite,
        )

    def select_files(
        self,
        request: str,
        project_summary: str,
        candidates: list[str],
        limit: int,
    ) -> FileSelection:
        prompt = prompts.file_selection_prompt(request, project_summary, candidates, limit)
        return self.invoke(
            "select_files",
            "Pick the files that must change",
            prompt,
            FileSelection,
            max_tokens=MAX_CLASSIFY_TOKENS,
        )

    def regenerate_files(
        self,
        request: str,
        project_summary: str,
        files: dict[str, str],
    ) -> RegeneratedFiles:
        prompt = prompts.regeneration_prompt(request, project_summary, files)
        return self.invoke(
            "regenerate_files",
            "Complete new contents for the given files",
            prompt,
            RegeneratedFiles,
        )
