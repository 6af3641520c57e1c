"""Flux Image Generation MCP Server.

Exposes the Black Forest Labs Flux models as MCP tools. Each tool submits a
generation task, waits for it to finish and saves the image locally, plus
two expert prompt resources with prompt-writing guidance.
"""

import asyncio
import logging
import sys
from functools import lru_cache
from typing import Literal, Optional

from fastmcp import FastMCP

from flux_tool.client import FluxApiClient
from flux_tool.configuration import Configuration
from flux_tool.dispatcher import TOOLS, ToolDispatcher
from flux_tool.errors import ValidationError
from flux_tool.experts import ExpertPrompts
from flux_tool.file_manager import FileManager

config = Configuration()

# stdout carries the protocol under the stdio transport
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=config.log_level.upper(),
    stream=sys.stderr,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

mcp = FastMCP("Flux Image Generation")
experts = ExpertPrompts()

OutputFormat = Literal["jpeg", "png"]


@lru_cache(maxsize=1)
def get_dispatcher() -> ToolDispatcher:
    """Build the dispatcher on first use so the server can start without an API key."""
    client = FluxApiClient(
        api_key=config.bfl_api_key,
        base_url=config.bfl_api_base,
        request_timeout=config.flux_request_timeout,
        max_wait_time=config.flux_max_wait_time,
        poll_interval=config.flux_poll_interval,
    )
    file_manager = FileManager(default_output_dir=config.flux_output_dir)
    logger.info(f"Images will be saved under {file_manager.default_output_dir}")
    return ToolDispatcher(client, file_manager)


def _run_tool(tool_name: str, **arguments) -> str:
    """Forward the supplied (non-None) arguments to the dispatcher.

    Blocks for the whole poll loop, so the async tools run it in a worker thread.
    """
    args = {k: v for k, v in arguments.items() if v is not None}
    logger.info(f"{tool_name} called with {sorted(args)}")
    try:
        dispatcher = get_dispatcher()
    except ValidationError as e:
        logger.error(f"Cannot run {tool_name}: {e}")
        return f"Error: {e}. Set the BFL_API_KEY environment variable."
    return dispatcher.invoke(tool_name, args)


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False})
async def flux_pro_generate(
    prompt: str,
    image_prompt: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    steps: Optional[int] = None,
    guidance: Optional[float] = None,
    seed: Optional[int] = None,
    safety_tolerance: Optional[int] = None,
    prompt_upsampling: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    output_path: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Generate high-quality images using the FLUX.1 [pro] model. Best for professional
    results, detailed scenes and complex compositions.

    Args:
        prompt: Detailed text prompt for image generation
        image_prompt: Optional base64 encoded image to use as a visual prompt
        width: Width in pixels (multiple of 32, 256-1440, default 1024)
        height: Height in pixels (multiple of 32, 256-1440, default 768)
        steps: Generation steps (1-50, default 40)
        guidance: Guidance scale (1.5-5, default 2.5)
        seed: Seed for reproducibility
        safety_tolerance: Safety tolerance (0-6, default 2)
        prompt_upsampling: Enable prompt upsampling for creativity
        output_format: "jpeg" (default) or "png"
        output_path: Directory to save into; absolute, ~/ or relative to the default output directory
        filename: File name without extension; derived from the prompt when omitted

    Returns:
        Text report with the saved path and generation parameters, or an error message
    """
    return await asyncio.to_thread(
        _run_tool, "flux_pro_generate",
        prompt=prompt, image_prompt=image_prompt, width=width, height=height, steps=steps,
        guidance=guidance, seed=seed, safety_tolerance=safety_tolerance,
        prompt_upsampling=prompt_upsampling, output_format=output_format,
        output_path=output_path, filename=filename,
    )


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False})
async def flux_dev_generate(
    prompt: str,
    image_prompt: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    steps: Optional[int] = None,
    guidance: Optional[float] = None,
    seed: Optional[int] = None,
    safety_tolerance: Optional[int] = None,
    prompt_upsampling: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    output_path: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Generate images using the FLUX.1 [dev] model. Fast and good quality, ideal for
    experimentation and iterations.

    Args:
        prompt: Text prompt for image generation
        image_prompt: Optional base64 encoded image prompt
        width: Width in pixels (multiple of 32, 256-1440, default 1024)
        height: Height in pixels (multiple of 32, 256-1440, default 768)
        steps: Generation steps (1-50, default 28)
        guidance: Guidance scale (1.5-5, default 3)
        seed: Seed for reproducibility
        safety_tolerance: Safety tolerance (0-6, default 2)
        prompt_upsampling: Enable prompt upsampling
        output_format: "jpeg" (default) or "png"
        output_path: Directory to save into
        filename: File name without extension

    Returns:
        Text report with the saved path and generation parameters, or an error message
    """
    return await asyncio.to_thread(
        _run_tool, "flux_dev_generate",
        prompt=prompt, image_prompt=image_prompt, width=width, height=height, steps=steps,
        guidance=guidance, seed=seed, safety_tolerance=safety_tolerance,
        prompt_upsampling=prompt_upsampling, output_format=output_format,
        output_path=output_path, filename=filename,
    )


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False})
async def flux_pro_11_generate(
    prompt: str,
    image_prompt: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    seed: Optional[int] = None,
    safety_tolerance: Optional[int] = None,
    prompt_upsampling: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    output_path: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Generate images using FLUX 1.1 [pro], the latest model with improved quality
    and faster generation.

    Args:
        prompt: Text prompt for image generation
        image_prompt: Optional base64 encoded image for Flux Redux
        width: Width in pixels (multiple of 32, 256-1440, default 1024)
        height: Height in pixels (multiple of 32, 256-1440, default 768)
        seed: Seed for reproducibility
        safety_tolerance: Safety tolerance (0-6, default 2)
        prompt_upsampling: Enable prompt upsampling
        output_format: "jpeg" (default) or "png"
        output_path: Directory to save into
        filename: File name without extension

    Returns:
        Text report with the saved path and generation parameters, or an error message
    """
    return await asyncio.to_thread(
        _run_tool, "flux_pro_11_generate",
        prompt=prompt, image_prompt=image_prompt, width=width, height=height, seed=seed,
        safety_tolerance=safety_tolerance, prompt_upsampling=prompt_upsampling,
        output_format=output_format, output_path=output_path, filename=filename,
    )


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False})
async def flux_kontext_pro_generate(
    prompt: str,
    input_image: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    seed: Optional[int] = None,
    safety_tolerance: Optional[int] = None,
    prompt_upsampling: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    output_path: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Edit or create images using FLUX.1 Kontext [pro], specialized for
    image-to-image transformations and edits.

    Args:
        prompt: Text prompt describing the desired output
        input_image: Base64 encoded input image or URL to edit/transform
        aspect_ratio: Aspect ratio between 21:9 and 9:21 (e.g. "16:9", "1:1", "4:3")
        seed: Seed for reproducibility
        safety_tolerance: Safety tolerance (0-2 recommended for Kontext, default 2)
        prompt_upsampling: Enable prompt upsampling
        output_format: "jpeg" (default) or "png"
        output_path: Directory to save into
        filename: File name without extension

    Returns:
        Text report with the saved path and generation parameters, or an error message
    """
    return await asyncio.to_thread(
        _run_tool, "flux_kontext_pro_generate",
        prompt=prompt, input_image=input_image, aspect_ratio=aspect_ratio, seed=seed,
        safety_tolerance=safety_tolerance, prompt_upsampling=prompt_upsampling,
        output_format=output_format, output_path=output_path, filename=filename,
    )


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False})
async def flux_kontext_max_generate(
    prompt: str,
    input_image: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    seed: Optional[int] = None,
    safety_tolerance: Optional[int] = None,
    prompt_upsampling: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    output_path: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Edit or create images using FLUX.1 Kontext [max], maximum quality for
    image-to-image transformations.

    Args:
        prompt: Text prompt describing the desired output
        input_image: Base64 encoded input image or URL to edit/transform
        aspect_ratio: Aspect ratio between 21:9 and 9:21
        seed: Seed for reproducibility
        safety_tolerance: Safety tolerance (0-2 recommended for Kontext, default 2)
        prompt_upsampling: Enable prompt upsampling
        output_format: "jpeg" (default) or "png"
        output_path: Directory to save into
        filename: File name without extension

    Returns:
        Text report with the saved path and generation parameters, or an error message
    """
    return await asyncio.to_thread(
        _run_tool, "flux_kontext_max_generate",
        prompt=prompt, input_image=input_image, aspect_ratio=aspect_ratio, seed=seed,
        safety_tolerance=safety_tolerance, prompt_upsampling=prompt_upsampling,
        output_format=output_format, output_path=output_path, filename=filename,
    )


def _expert_reader(expert_id: str):
    def read_expert() -> str:
        return experts.get_prompt(expert_id)
    return read_expert


for _expert in experts.list_resources():
    mcp.resource(
        _expert.uri,
        name=_expert.name,
        description=_expert.description,
        mime_type=_expert.mime_type,
    )(_expert_reader(_expert.id))


# transport, host and port come from MCP_TRANSPORT, HOST and PORT
def run_server():
    """Run the MCP server with configured transport."""
    if not config.bfl_api_key:
        logger.warning("Please configure the BFL_API_KEY environment variable before calling any tool")

    logger.info(f"Starting Flux Image Generation MCP Server with transport={config.mcp_transport}")
    logger.info(f"Registered tools: {', '.join(TOOLS)}")

    if config.mcp_transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=config.mcp_transport, host=config.host, port=config.port)


if __name__ == "__main__":
    run_server()
