"""
Graph routes - follow requests and follow edges
"""
from fastapi import APIRouter, Depends, status

from ...schemas import (
    CurrentUser,
    FollowRequestResponse,
    FollowEdgeResponse,
    IncomingRequest,
    IncomingRequestsResponse,
    RelationshipResponse,
    MessageResponse,
)
from ...application.connections import ConnectionWorkflow
from ...application.profiles import ProfileService
from ...dependencies import get_current_user, get_connection_workflow, get_profile_service
from .. import presenters


router = APIRouter(prefix="/api/v1/graph")


@router.get(
    "/relationship/{user_id}",
    response_model=RelationshipResponse,
    tags=["Relationship"],
    summary="Get relationship with user",
)
async def get_relationship(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Get relationship between current user and target user

    - mutual: Both users follow each other
    - a_follows_b / b_follows_a: One-directional follow
    - requested_by_a / requested_by_b: A request is pending
    - none: No relationship
    """
    return await profiles.relationship(current_user.id, user_id)


@router.get(
    "/requests/incoming",
    response_model=IncomingRequestsResponse,
    tags=["Follow Requests"],
    summary="Get pending follow requests",
)
async def get_incoming_requests(
    current_user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Requests waiting for your answer, newest first"""
    pending = await profiles.incoming_requests(current_user.id)
    requests = [
        IncomingRequest(
            id=request.id,
            requester_id=request.requester_id,
            requester=presenters.public_profile(requester),
            created_at=request.created_at,
        )
        for request, requester in pending
    ]
    return IncomingRequestsResponse(requests=requests, count=len(requests))


@router.post(
    "/requests/{user_id}",
    response_model=FollowRequestResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Follow Requests"],
    summary="Send a follow request",
)
async def send_follow_request(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    """
    Ask to follow a user

    - Rejected with 409 if either of you already follows the other
    - Rejected with 409 if a request is already pending
    """
    return await workflow.request(current_user.id, user_id)


@router.delete(
    "/requests/to/{user_id}",
    response_model=MessageResponse,
    tags=["Follow Requests"],
    summary="Withdraw the request sent to a user",
)
async def cancel_request_to_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    await workflow.cancel_to(current_user.id, user_id)
    return MessageResponse(message="Follow request cancelled")


@router.post(
    "/requests/{request_id}/accept",
    response_model=FollowEdgeResponse,
    tags=["Follow Requests"],
    summary="Accept follow request",
)
async def accept_follow_request(
    request_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    """
    Accept a follow request addressed to you

    The requester becomes your follower.
    """
    return await workflow.accept(current_user.id, request_id)


@router.post(
    "/requests/{request_id}/decline",
    response_model=MessageResponse,
    tags=["Follow Requests"],
    summary="Decline follow request",
)
async def decline_follow_request(
    request_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    await workflow.decline(current_user.id, request_id)
    return MessageResponse(message="Follow request declined")


@router.delete(
    "/requests/{request_id}",
    response_model=MessageResponse,
    tags=["Follow Requests"],
    summary="Cancel a request you sent",
)
async def cancel_follow_request(
    request_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    await workflow.cancel(current_user.id, request_id)
    return MessageResponse(message="Follow request cancelled")


@router.delete(
    "/following/{user_id}",
    response_model=MessageResponse,
    tags=["Follow"],
    summary="Unfollow a user",
)
async def unfollow_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ConnectionWorkflow = Depends(get_connection_workflow),
):
    """
    Stop following a user

    Only your own edge is removed; if they follow you, that stays.
    """
    await workflow.unfollow(current_user.id, user_id)
    return MessageResponse(message=f"Unfollowed user {user_id}")
