"""
Skills routes: GET /api/skills, GET /api/view, POST /api/skills/refresh

技能列表与内容查看。enabled_skills / disabled_skills 查询参数只作用于本次请求。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from ...skills import SkillCatalog, parse_skills_flags

logger = logging.getLogger(__name__)

router = APIRouter()


def _catalog(request: Request) -> SkillCatalog:
    return request.app.state.catalog


def _flags(request: Request):
    query = {
        key: request.query_params.getlist(key)
        for key in ("enabled_skills", "disabled_skills")
        if key in request.query_params
    }
    return parse_skills_flags(query)


@router.get("/api/skills")
async def list_skills(request: Request):
    """List visible skills (name + description) in catalog order."""
    summaries = await _catalog(request).list_visible(_flags(request))
    return {
        "skills": [{"name": s.name, "description": s.description} for s in summaries],
    }


@router.get("/api/view")
async def view_skill(request: Request, skill_name: str, path: str = ""):
    """View SKILL.md, a file inside the skill, or a directory listing."""
    content = await _catalog(request).view(_flags(request), skill_name, path or None)
    return {"content": content}


@router.post("/api/skills/refresh")
async def refresh_skills(request: Request):
    """Force a full re-resolution of all skill sources."""
    catalog = await _catalog(request).refresh()
    logger.info(f"Skill catalog refreshed via API: {len(catalog)} skill(s)")
    return {"status": "ok", "count": len(catalog)}
