from __future__ import annotations

import logging
from typing import Any

import anyio
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from nftpipe.exceptions import NFTPipelineError
from nftpipe.operations import OperationRegistry, create_registry
from nftpipe.pipeline import NFTPipeline
from nftpipe.settings import PipelineSettings

logger = logging.getLogger(__name__)

SERVER_NAME = 'nft-pipeline-mcp-server'
SERVER_VERSION = '1.0.0'


def create_server(registry: OperationRegistry) -> Server:
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=operation.name, description=operation.description, inputSchema=operation.input_schema)
            for operation in registry.values()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        try:
            response = await registry.async_call(name, arguments)
        except NFTPipelineError as e:
            logger.warning(f'{name} failed: {e}')
            raise
        return [types.TextContent(type='text', text=item['text']) for item in response['content']]

    return server


async def serve(settings: PipelineSettings) -> None:
    registry = create_registry(NFTPipeline.from_settings(settings))
    server = create_server(registry)
    logger.info(f'{SERVER_NAME} {SERVER_VERSION} listening on stdio, ipfs service: {settings.ipfs_service}')
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    settings = PipelineSettings()
    # stdout carries the protocol stream, basicConfig logs to stderr
    settings.configure_logging()
    anyio.run(serve, settings)


if __name__ == '__main__':
    main()
