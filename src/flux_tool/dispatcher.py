"""Tool dispatch for the Flux generation tools.

Each tool maps to one fixed remote model endpoint. An invocation validates
its arguments, strips the local-only fields, runs the remote task to
completion, saves the image and answers with a text report.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from flux_tool.client import FluxApiClient
from flux_tool.errors import ArtifactNotFoundError, FluxToolError, UnknownToolError, ValidationError
from flux_tool.schemas import SaveResult, TaskResult, ToolDescriptor

logger = logging.getLogger(__name__)

# consumed by the save step only, never sent to the remote service
LOCAL_FIELDS = ("output_path", "filename")

_COMMON_PARAMETERS = [
    "prompt", "seed", "safety_tolerance", "prompt_upsampling", "output_format", *LOCAL_FIELDS,
]
_TEXT_TO_IMAGE_PARAMETERS = _COMMON_PARAMETERS + ["image_prompt", "width", "height", "steps", "guidance"]
_KONTEXT_PARAMETERS = _COMMON_PARAMETERS + ["input_image", "aspect_ratio"]

TOOLS: Mapping[str, ToolDescriptor] = MappingProxyType({
    tool.name: tool
    for tool in (
        ToolDescriptor(
            name="flux_pro_generate",
            endpoint="v1/flux-pro",
            model="flux-pro",
            display_name="FLUX.1 [pro]",
            description="Generate high-quality images with FLUX.1 [pro]; best for professional results, "
                        "detailed scenes and complex compositions",
            parameters=_TEXT_TO_IMAGE_PARAMETERS,
        ),
        ToolDescriptor(
            name="flux_dev_generate",
            endpoint="v1/flux-dev",
            model="flux-dev",
            display_name="FLUX.1 [dev]",
            description="Generate images with FLUX.1 [dev]; fast, good quality, ideal for experimentation",
            parameters=_TEXT_TO_IMAGE_PARAMETERS,
        ),
        ToolDescriptor(
            name="flux_pro_11_generate",
            endpoint="v1/flux-pro-1.1",
            model="flux-pro-11",
            display_name="FLUX 1.1 [pro]",
            description="Generate images with FLUX 1.1 [pro]; improved quality and faster generation",
            parameters=[p for p in _TEXT_TO_IMAGE_PARAMETERS if p not in ("steps", "guidance")],
        ),
        ToolDescriptor(
            name="flux_kontext_pro_generate",
            endpoint="v1/flux-kontext-pro",
            model="flux-kontext-pro",
            display_name="FLUX.1 Kontext [pro]",
            description="Edit or create images with FLUX.1 Kontext [pro]; specialized for image-to-image edits",
            parameters=_KONTEXT_PARAMETERS,
        ),
        ToolDescriptor(
            name="flux_kontext_max_generate",
            endpoint="v1/flux-kontext-max",
            model="flux-kontext-max",
            display_name="FLUX.1 Kontext [max]",
            description="Edit or create images with FLUX.1 Kontext [max]; maximum quality image-to-image edits",
            parameters=_KONTEXT_PARAMETERS,
        ),
    )
})

PROMPT_PREVIEW_LENGTH = 100
DEFAULT_SAFETY_TOLERANCE = 2


class ImageSaver(Protocol):
    def save_generated_image(
        self,
        image_url: str,
        output_path: Optional[str] = None,
        filename: Optional[str] = None,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
        output_format: Optional[str] = None,
    ) -> SaveResult:
        ...


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_arguments(args: Mapping[str, Any]) -> None:
    """Check the arguments shared by every tool. The first violation wins.

    Raises:
        ValidationError: with a message suitable for the caller
    """
    prompt = args.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("prompt is required")

    for dimension in ("width", "height"):
        value = args.get(dimension)
        if value is None:
            continue
        if not _is_int(value) or value <= 0:
            raise ValidationError(f"{dimension} must be a positive integer")
        if value % 32 != 0:
            raise ValidationError(f"{dimension} must be a multiple of 32")

    safety_tolerance = args.get("safety_tolerance")
    if safety_tolerance is not None:
        if not _is_int(safety_tolerance) or not 0 <= safety_tolerance <= 6:
            raise ValidationError("safety_tolerance must be between 0 and 6")


def partition_arguments(args: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split arguments into the remote payload and the local save options."""
    remote = {k: v for k, v in args.items() if k not in LOCAL_FIELDS}
    local = {k: args[k] for k in LOCAL_FIELDS if k in args}
    return remote, local


def extract_artifact_url(result: Any) -> str:
    """Pull the image URL out of a Ready result payload."""
    if isinstance(result, dict) and result.get("sample"):
        return result["sample"]
    if isinstance(result, list) and result:
        first = result[0]
        if isinstance(first, str) and first:
            return first
        if isinstance(first, dict) and first.get("sample"):
            return first["sample"]
    raise ArtifactNotFoundError("No image URL found in result")


def _preview(prompt: str) -> str:
    if len(prompt) > PROMPT_PREVIEW_LENGTH:
        return prompt[:PROMPT_PREVIEW_LENGTH] + "..."
    return prompt


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def format_report(
    tool: ToolDescriptor,
    args: Mapping[str, Any],
    task_id: str,
    image_url: str,
    saved: SaveResult,
) -> str:
    width = _or_default(args.get("width"), "default")
    height = _or_default(args.get("height"), "default")
    lines = [
        "Image generated successfully",
        "",
        f"Model: {tool.display_name}",
        f"Prompt: {_preview(args['prompt'])}",
        f"Saved to: {saved.saved_path}",
        f"Task ID: {task_id}",
        f"Original URL: {image_url}",
        "",
        "Generation parameters:",
        f"- Dimensions: {width}x{height}",
        f"- Seed: {_or_default(args.get('seed'), 'random')}",
        f"- Steps: {_or_default(args.get('steps'), 'default')}",
        f"- Guidance: {_or_default(args.get('guidance'), 'default')}",
        f"- Safety tolerance: {_or_default(args.get('safety_tolerance'), DEFAULT_SAFETY_TOLERANCE)}",
    ]
    return "\n".join(lines)


class ToolDispatcher:
    """Runs generation tools against the Flux API and saves their output."""

    def __init__(self, client: FluxApiClient, saver: ImageSaver):
        self.client = client
        self.saver = saver

    def list_tools(self) -> List[ToolDescriptor]:
        return list(TOOLS.values())

    def get_tool(self, tool_name: str) -> ToolDescriptor:
        try:
            return TOOLS[tool_name]
        except KeyError:
            raise UnknownToolError(f"Unknown tool: {tool_name}") from None

    def _log_progress(self, status: TaskResult) -> None:
        if status.progress is not None:
            logger.info(f"Task {status.id} {status.status}: {status.progress:.0f}%")
        else:
            logger.debug(f"Task {status.id} {status.status}")

    def invoke(self, tool_name: str, args: Optional[Mapping[str, Any]] = None) -> str:
        """Run one generation tool and describe the outcome.

        Unknown tool names raise ``UnknownToolError``. Every other failure,
        including invalid arguments, comes back as a report starting with
        "Error".
        """
        tool = self.get_tool(tool_name)
        args = dict(args or {})

        try:
            validate_arguments(args)
        except ValidationError as e:
            logger.warning(f"Validation error in {tool_name}: {e}")
            return f"Error: {e}"

        remote_payload, local_fields = partition_arguments(args)

        try:
            task_id = self.client.submit(tool.endpoint, remote_payload)
            completed = self.client.await_completion(task_id, on_progress=self._log_progress)
            image_url = extract_artifact_url(completed.result)
            saved = self.saver.save_generated_image(
                image_url,
                output_path=local_fields.get("output_path"),
                filename=local_fields.get("filename"),
                prompt=args["prompt"],
                model=tool.model,
                output_format=args.get("output_format"),
            )
        except FluxToolError as e:
            logger.warning(f"{tool_name} failed: {e}")
            return f"Error executing {tool_name}: {e}"
        except Exception as e:
            logger.exception(f"Unexpected error in {tool_name}: {e}")
            return f"Error executing {tool_name}: {e}"

        logger.info(f"{tool_name} saved task {task_id} to {saved.saved_path}")
        return format_report(tool, args, task_id, image_url, saved)
