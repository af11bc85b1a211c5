from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ...matching import ProfileMatcher
from ...page import build_page_context
from ...profiles import ProfileCollection, profile_to_dict
from ..dependencies import get_profiles
from ..schemas import MatchRequest, MatchResponse

router = APIRouter(tags=["profiles"])


@router.get("/profiles", summary="List conversion profiles")
def list_profiles(profiles: ProfileCollection = Depends(get_profiles)) -> list[dict[str, Any]]:
    return [profile_to_dict(profile) for profile in profiles]


@router.post("/match", summary="Pick the profile for a page", response_model=MatchResponse)
async def match_profile(
    request: MatchRequest,
    profiles: ProfileCollection = Depends(get_profiles),
) -> MatchResponse:
    context = await run_in_threadpool(build_page_context, request.html, request.url, request.title)
    matcher = ProfileMatcher()
    chosen = matcher.find_matching_profile(profiles.profiles, context)
    if chosen is None:
        return MatchResponse(profile_id=None, profile_name=None)
    return MatchResponse(
        profile_id=chosen.id,
        profile_name=chosen.name,
        reasons=matcher.get_match_reasons(chosen, context),
        warnings=matcher.invalid_rules(chosen),
    )


__all__ = ["router"]
