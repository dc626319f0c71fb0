from types import SimpleNamespace
import uuid

import pytest
from sqlalchemy import delete as sa_delete, false, func, select
from sqlalchemy.exc import IntegrityError

from helpers import publish_video, signup
from models.like import Like, LikeTarget
from services import toggle


@pytest.mark.asyncio
async def test_comment_lifecycle(client):
    author = await signup(client, "author")
    reader = await signup(client, "reader")
    video = await publish_video(client, author["headers"])

    empty = await client.post(f"/api/v1/comments/{video['id']}", json={"content": "  "}, headers=reader["headers"])
    assert empty.status_code == 400
    assert empty.json()["message"] == "Comment content is required"

    unknown_video = await client.post(
        f"/api/v1/comments/{uuid.uuid4()}",
        json={"content": "hello"},
        headers=reader["headers"],
    )
    assert unknown_video.status_code == 404

    created = await client.post(f"/api/v1/comments/{video['id']}", json={"content": "First!"}, headers=reader["headers"])
    assert created.status_code == 201
    comment = created.json()["data"]
    assert comment["owner"]["username"] == "reader"

    await client.post(f"/api/v1/likes/toggle/c/{comment['id']}", headers=author["headers"])
    listing = (await client.get(f"/api/v1/comments/{video['id']}")).json()["data"]
    assert listing["totalDocs"] == 1
    assert listing["comments"][0]["likesCount"] == 1
    assert listing["comments"][0]["owner"]["username"] == "reader"

    foreign = await client.patch(
        f"/api/v1/comments/c/{comment['id']}",
        json={"content": "edited by someone else"},
        headers=author["headers"],
    )
    assert foreign.status_code == 404
    assert foreign.json()["message"] == "Comment not found or you are not the owner"

    edited = await client.patch(
        f"/api/v1/comments/c/{comment['id']}",
        json={"content": "First! (edited)"},
        headers=reader["headers"],
    )
    assert edited.status_code == 200
    assert edited.json()["data"]["content"] == "First! (edited)"

    deleted = await client.delete(f"/api/v1/comments/c/{comment['id']}", headers=reader["headers"])
    assert deleted.status_code == 200
    assert (await client.get(f"/api/v1/comments/{video['id']}")).json()["data"]["totalDocs"] == 0


@pytest.mark.asyncio
async def test_tweet_lifecycle(client):
    poster = await signup(client, "poster")
    other = await signup(client, "other")

    blank = await client.post("/api/v1/tweets", json={"content": ""}, headers=poster["headers"])
    assert blank.status_code == 400

    first = (await client.post("/api/v1/tweets", json={"content": "one"}, headers=poster["headers"])).json()["data"]
    second = (await client.post("/api/v1/tweets", json={"content": "two"}, headers=poster["headers"])).json()["data"]
    assert first["owner"]["username"] == "poster"

    newest_first = (await client.get(f"/api/v1/tweets/user/{poster['id']}")).json()["data"]
    assert [tweet["content"] for tweet in newest_first["tweets"]] == ["two", "one"]

    oldest_first = (
        await client.get(f"/api/v1/tweets/user/{poster['id']}", params={"sortType": "asc"})
    ).json()["data"]
    assert [tweet["content"] for tweet in oldest_first["tweets"]] == ["one", "two"]

    unknown = await client.get(f"/api/v1/tweets/user/{uuid.uuid4()}")
    assert unknown.status_code == 404

    foreign = await client.patch(f"/api/v1/tweets/{first['id']}", json={"content": "x"}, headers=other["headers"])
    assert foreign.status_code == 404

    updated = await client.patch(f"/api/v1/tweets/{first['id']}", json={"content": "uno"}, headers=poster["headers"])
    assert updated.json()["data"]["content"] == "uno"

    await client.post(f"/api/v1/likes/toggle/t/{second['id']}", headers=other["headers"])
    deleted = await client.delete(f"/api/v1/tweets/{second['id']}", headers=poster["headers"])
    assert deleted.status_code == 200

    remaining = (await client.get(f"/api/v1/tweets/user/{poster['id']}")).json()["data"]
    assert [tweet["content"] for tweet in remaining["tweets"]] == ["uno"]


@pytest.mark.asyncio
async def test_like_toggle_twice_returns_to_unliked(client, session_maker):
    owner = await signup(client, "owner")
    fan = await signup(client, "fan")
    video = await publish_video(client, owner["headers"])
    url = f"/api/v1/likes/toggle/v/{video['id']}"

    liked = await client.post(url, headers=fan["headers"])
    assert liked.json()["data"] == {"isLiked": True}
    assert liked.json()["message"] == "Video liked successfully"

    detail = (await client.get(f"/api/v1/videos/{video['id']}", headers=fan["headers"])).json()["data"]
    assert detail["likesCount"] == 1
    assert detail["isLiked"] is True

    unliked = await client.post(url, headers=fan["headers"])
    assert unliked.json()["data"] == {"isLiked": False}
    assert unliked.json()["message"] == "Video unliked successfully"

    async with session_maker() as db:
        assert await db.scalar(select(func.count(Like.id))) == 0

    missing = await client.post(f"/api/v1/likes/toggle/t/{uuid.uuid4()}", headers=fan["headers"])
    assert missing.status_code == 404
    assert missing.json()["message"] == "Tweet not found"

    malformed = await client.post("/api/v1/likes/toggle/c/not-an-id", headers=fan["headers"])
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_like_rows_are_rejected_by_the_store(client, session_maker):
    owner = await signup(client, "owner")
    video = await publish_video(client, owner["headers"])
    key = Like.key_for(LikeTarget(kind="video", id=video["id"]), owner["id"])

    async with session_maker() as db:
        db.add(Like(**key))
        await db.commit()
        db.add(Like(**key))
        with pytest.raises(IntegrityError):
            await db.commit()


def test_like_target_rejects_unknown_kinds():
    with pytest.raises(ValueError):
        LikeTarget(kind="playlist", id="x")
    assert Like.key_for(LikeTarget(kind="tweet", id="t1"), "u1") == {"liked_by": "u1", "tweet_id": "t1"}


@pytest.mark.asyncio
async def test_liked_videos_lists_published_likes_newest_first(client):
    owner = await signup(client, "owner")
    fan = await signup(client, "fan")
    first = await publish_video(client, owner["headers"], title="First")
    second = await publish_video(client, owner["headers"], title="Second")
    hidden = await publish_video(client, owner["headers"], title="Hidden")

    for video in (second, first, hidden):
        await client.post(f"/api/v1/likes/toggle/v/{video['id']}", headers=fan["headers"])
    await client.patch(f"/api/v1/videos/toggle/publish/{hidden['id']}", headers=owner["headers"])

    response = await client.get("/api/v1/likes/videos", headers=fan["headers"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert [video["title"] for video in data["likedVideos"]] == ["First", "Second"]
    assert data["likedVideos"][0]["owner"]["username"] == "owner"
    assert data["likedVideos"][0]["likedAt"]

    assert (await client.get("/api/v1/likes/videos")).status_code == 401


@pytest.mark.asyncio
async def test_subscriptions(client):
    channel = await signup(client, "channel")
    fan = await signup(client, "fan")
    url = f"/api/v1/subscriptions/c/{channel['id']}"

    own = await client.post(f"/api/v1/subscriptions/c/{fan['id']}", headers=fan["headers"])
    assert own.status_code == 400

    unknown = await client.post(f"/api/v1/subscriptions/c/{uuid.uuid4()}", headers=fan["headers"])
    assert unknown.status_code == 404

    subscribed = await client.post(url, headers=fan["headers"])
    assert subscribed.json()["data"] == {"subscribed": True}

    subscribers = (await client.get(url)).json()["data"]
    assert subscribers["totalDocs"] == 1
    assert subscribers["subscribers"][0]["username"] == "fan"
    assert subscribers["subscribers"][0]["subscribedAt"]

    channels = (await client.get(f"/api/v1/subscriptions/u/{fan['id']}")).json()["data"]
    assert [item["username"] for item in channels["channels"]] == ["channel"]

    video = await publish_video(client, channel["headers"])
    detail = (await client.get(f"/api/v1/videos/{video['id']}", headers=fan["headers"])).json()["data"]
    assert detail["isSubscribed"] is True
    assert detail["owner"]["subscribersCount"] == 1

    unsubscribed = await client.post(url, headers=fan["headers"])
    assert unsubscribed.json()["data"] == {"subscribed": False}
    assert (await client.get(url)).json()["data"]["totalDocs"] == 0

    missing_subscriber = await client.get(f"/api/v1/subscriptions/u/{uuid.uuid4()}")
    assert missing_subscriber.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_stats_and_videos(client):
    creator = await signup(client, "creator")
    fans = [await signup(client, f"fan{index}") for index in range(2)]
    published = await publish_video(client, creator["headers"], title="Public")
    unpublished = await publish_video(client, creator["headers"], title="Draft")
    await client.patch(f"/api/v1/videos/toggle/publish/{unpublished['id']}", headers=creator["headers"])

    for fan in fans:
        await client.post(f"/api/v1/subscriptions/c/{creator['id']}", headers=fan["headers"])
        await client.post(f"/api/v1/likes/toggle/v/{published['id']}", headers=fan["headers"])
        await client.get(f"/api/v1/videos/{published['id']}", headers=fan["headers"])

    stats = await client.get("/api/v1/dashboard/stats", headers=creator["headers"])
    assert stats.status_code == 200
    assert stats.json()["data"] == {
        "totalSubscribers": 2,
        "totalVideos": 1,
        "totalVideoViews": 2,
        "totalLikes": 2,
    }

    videos = (await client.get("/api/v1/dashboard/videos", headers=creator["headers"])).json()["data"]
    assert [video["title"] for video in videos["videos"]] == ["Public"]

    assert (await client.get("/api/v1/dashboard/stats")).status_code == 401


@pytest.mark.asyncio
async def test_toggle_rereads_state_when_a_concurrent_like_wins_the_insert(client, session_maker, monkeypatch):
    owner = await signup(client, "owner")
    fan = await signup(client, "fan")
    video = await publish_video(client, owner["headers"])
    key = Like.key_for(LikeTarget(kind="video", id=video["id"]), fan["id"])

    # The other request's like lands after this toggle's delete has already looked.
    async with session_maker() as db:
        db.add(Like(**key))
        await db.commit()

    def delete_that_misses(model):
        return SimpleNamespace(where=lambda *criteria: sa_delete(model).where(false()))

    monkeypatch.setattr(toggle, "delete", delete_that_misses)

    async with session_maker() as db:
        assert await toggle.toggle_membership(db, Like, key) is True

    async with session_maker() as db:
        stored = await db.scalar(
            select(func.count(Like.id)).where(Like.liked_by == fan["id"], Like.video_id == video["id"])
        )
    assert stored == 1
