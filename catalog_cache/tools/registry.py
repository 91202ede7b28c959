"""Tool service wiring and registration."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from catalog_cache.services.base import ServiceContext
from catalog_cache.services.cache_admin_service import CacheAdminService
from catalog_cache.tools.cache_tools import register_cache_tools


@dataclass
class ToolServices:
    cache_admin: CacheAdminService


def build_tool_services(ctx: ServiceContext) -> ToolServices:
    return ToolServices(cache_admin=CacheAdminService(ctx))


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_cache_tools(mcp, services)
