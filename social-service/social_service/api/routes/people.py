"""
People routes - discovery and other users' profiles
"""
from fastapi import APIRouter, Depends

from ...schemas import CurrentUser, PeopleResponse, PersonResponse
from ...application.discovery import DiscoveryEngine
from ...application.profiles import ProfileService
from ...dependencies import get_current_user, get_discovery_engine, get_profile_service
from .. import presenters


router = APIRouter(prefix="/api/v1/people", tags=["People"])


@router.get("", response_model=PeopleResponse)
async def get_people(
    current_user: CurrentUser = Depends(get_current_user),
    discovery: DiscoveryEngine = Depends(get_discovery_engine),
):
    """
    People you may not know

    Everyone except your followers, the people you follow, the people you
    already sent a request to, and placeholder accounts.
    """
    people = await discovery.discoverable(current_user.id)
    return PeopleResponse(
        people=[presenters.public_profile(u) for u in people],
        count=len(people),
    )


@router.get("/{user_id}", response_model=PersonResponse)
async def get_person(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Get a user's profile

    Posts are only returned when you are connected with the user.
    """
    user, stats, status, posts = await profiles.person(current_user.id, user_id)
    return PersonResponse(
        profile=presenters.user_profile(user, stats),
        status=status,
        posts=[presenters.feed_post(p) for p in posts] if posts is not None else None,
    )
