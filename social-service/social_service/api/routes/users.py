"""
User routes
"""
from fastapi import APIRouter, Depends

from ...schemas import (
    CurrentUser,
    UserProfile,
    UpdateProfile,
    UpdateAvatar,
    ConnectionsResponse,
    RelationshipsResponse,
)
from ...application.graph import GraphResolver
from ...application.profiles import ProfileService
from ...dependencies import get_current_user, get_graph_resolver, get_profile_service
from .. import presenters


router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
async def get_my_profile(
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Get current user's profile

    Includes follower and following counts.
    """
    user, stats = await profiles.me(current_user.id)
    return presenters.user_profile(user, stats)


@router.put("/me", response_model=UserProfile)
async def update_my_profile(
    profile_data: UpdateProfile,
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Update current user's profile

    - A handle already used by someone else is rejected with 409
    """
    await profiles.update_profile(
        current_user.id,
        name=profile_data.name,
        handle=profile_data.handle,
        bio=profile_data.bio,
    )
    user, stats = await profiles.me(current_user.id)
    return presenters.user_profile(user, stats)


@router.put("/me/avatar", response_model=UserProfile)
async def update_my_avatar(
    avatar: UpdateAvatar,
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Set the avatar to a reference returned by the media service"""
    await profiles.update_avatar(current_user.id, avatar.avatar_url)
    user, stats = await profiles.me(current_user.id)
    return presenters.user_profile(user, stats)


@router.get("/me/relationships", response_model=RelationshipsResponse)
async def get_my_relationships(
    current_user: CurrentUser = Depends(get_current_user),
    graph: GraphResolver = Depends(get_graph_resolver),
):
    """Followers, followings, mutuals and pending requests of the caller"""
    rel = await graph.relationships(current_user.id)
    return RelationshipsResponse(
        user_id=rel.user_id,
        follower_ids=sorted(rel.follower_ids),
        following_ids=sorted(rel.following_ids),
        mutual_ids=sorted(rel.mutual_ids),
        pending_outgoing=sorted(rel.pending_outgoing),
        pending_incoming=sorted(rel.pending_incoming),
    )


@router.get("/me/connections", response_model=ConnectionsResponse)
async def get_my_connections(
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Followers and followings with their public profiles"""
    followers, followings = await profiles.connections(current_user.id)
    return ConnectionsResponse(
        followers=[presenters.public_profile(u) for u in followers],
        followings=[presenters.public_profile(u) for u in followings],
    )
