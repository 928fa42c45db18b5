"""API tests for comment and reaction endpoints."""

import uuid

import pytest

from models import Activity, Comment, CommentReaction, Notification, TaskAssignee
from tests.conftest import fetch, fetch_all
from tests.factories import TaskFactory

COMMENTS = "/api/v1/comments"


async def post_comment(client, headers, task_id, content="Looks good", **extra):
    payload = {"task_id": str(task_id), "content": content, **extra}
    return await client.post(f"{COMMENTS}/", json=payload, headers=headers)


class TestCommentCrud:
    @pytest.mark.asyncio
    async def test_create_comment(self, client, headers, test_task, test_user, recorded_events):
        response = await post_comment(client, headers, test_task.id)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["content"] == "Looks good"
        assert data["author"]["name"] == "Alice Owner"
        assert data["is_edited"] is False
        assert data["reaction_counts"] == {}
        assert [event.type for event in recorded_events] == ["comment:created"]

        activities = await fetch_all(Activity, task_id=test_task.id)
        assert [activity.type for activity in activities] == ["task_comment_added"]

    @pytest.mark.asyncio
    async def test_stranger_cannot_comment(self, client, headers_2, test_task):
        response = await post_comment(client, headers_2, test_task.id)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_assignee_can_comment(self, client, test_db, headers_2, test_task, test_user_2):
        test_db.add(TaskAssignee(task_id=test_task.id, user_id=test_user_2.id))
        await test_db.commit()

        response = await post_comment(client, headers_2, test_task.id, "On it")

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_mentions_notify_the_mentioned_user(
        self, client, headers, test_task, test_user_2
    ):
        response = await post_comment(
            client, headers, test_task.id, "Can you check?", mentions=[str(test_user_2.id)]
        )

        assert response.json()["data"]["mentions"] == [str(test_user_2.id)]
        notifications = await fetch_all(Notification, recipient_id=test_user_2.id)
        assert len(notifications) == 1

    @pytest.mark.asyncio
    async def test_unknown_mention(self, client, headers, test_task):
        response = await post_comment(client, headers, test_task.id, mentions=[str(uuid.uuid4())])

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_reply_must_share_the_task(self, client, test_db, headers, test_task, test_user):
        other = TaskFactory(created_by=test_user.id)
        await test_db.commit()
        parent = (await post_comment(client, headers, other.id)).json()["data"]

        response = await post_comment(client, headers, test_task.id, parent_comment_id=parent["id"])

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PARENT_COMMENT"

    @pytest.mark.asyncio
    async def test_thread_listing(self, client, headers, test_task):
        parent = (await post_comment(client, headers, test_task.id, "Top")).json()["data"]
        await post_comment(client, headers, test_task.id, "Reply", parent_comment_id=parent["id"])
        await post_comment(client, headers, test_task.id, "Second top")

        response = await client.get(f"{COMMENTS}/task/{test_task.id}", headers=headers)

        data = response.json()["data"]
        assert data["total"] == 2
        assert [c["content"] for c in data["comments"]] == ["Top", "Second top"]
        assert [r["content"] for r in data["comments"][0]["replies"]] == ["Reply"]

        single = await client.get(f"{COMMENTS}/{parent['id']}", headers=headers)
        assert len(single.json()["data"]["replies"]) == 1

    @pytest.mark.asyncio
    async def test_only_author_edits(self, client, test_db, headers, headers_2, test_task, test_user_2):
        test_db.add(TaskAssignee(task_id=test_task.id, user_id=test_user_2.id))
        await test_db.commit()
        comment = (await post_comment(client, headers, test_task.id)).json()["data"]

        denied = await client.patch(
            f"{COMMENTS}/{comment['id']}", json={"content": "Hijacked"}, headers=headers_2
        )
        edited = await client.patch(
            f"{COMMENTS}/{comment['id']}", json={"content": "Looks great"}, headers=headers
        )

        assert denied.status_code == 403
        assert edited.json()["data"]["is_edited"] is True
        assert edited.json()["data"]["edited_at"] is not None

    @pytest.mark.asyncio
    async def test_task_owner_deletes_thread(
        self, client, test_db, headers, headers_2, test_task, test_user_2
    ):
        test_db.add(TaskAssignee(task_id=test_task.id, user_id=test_user_2.id))
        await test_db.commit()
        parent = (await post_comment(client, headers_2, test_task.id, "Question")).json()["data"]
        await post_comment(client, headers, test_task.id, "Answer", parent_comment_id=parent["id"])

        response = await client.delete(f"{COMMENTS}/{parent['id']}", headers=headers)

        assert response.status_code == 200
        assert await fetch_all(Comment, task_id=test_task.id) == []

    @pytest.mark.asyncio
    async def test_missing_comment(self, client, headers):
        response = await client.get(f"{COMMENTS}/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "COMMENT_NOT_FOUND"


class TestReactions:
    @pytest.mark.asyncio
    async def test_reaction_is_replaced_not_duplicated(self, client, headers, test_task, test_user):
        comment = (await post_comment(client, headers, test_task.id)).json()["data"]

        await client.post(f"{COMMENTS}/{comment['id']}/reactions", json={"reaction": "👍"}, headers=headers)
        response = await client.post(
            f"{COMMENTS}/{comment['id']}/reactions", json={"reaction": "🎉"}, headers=headers
        )

        assert response.json()["data"]["reaction_counts"] == {"🎉": 1}
        stored = await fetch_all(CommentReaction, user_id=test_user.id)
        assert [r.reaction for r in stored] == ["🎉"]

    @pytest.mark.asyncio
    async def test_unsupported_reaction(self, client, headers, test_task):
        comment = (await post_comment(client, headers, test_task.id)).json()["data"]

        response = await client.post(
            f"{COMMENTS}/{comment['id']}/reactions", json={"reaction": "🦄"}, headers=headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_and_remove(self, client, headers, test_task, test_user):
        comment = (await post_comment(client, headers, test_task.id)).json()["data"]
        await client.post(f"{COMMENTS}/{comment['id']}/reactions", json={"reaction": "❤️"}, headers=headers)

        listing = await client.get(f"{COMMENTS}/{comment['id']}/reactions", headers=headers)
        assert listing.json()["data"]["counts"] == {"❤️": 1}
        assert listing.json()["data"]["reactions"][0]["user_id"] == str(test_user.id)

        removed = await client.delete(f"{COMMENTS}/{comment['id']}/reactions", headers=headers)
        assert removed.json()["data"]["reaction_counts"] == {}

        again = await client.delete(f"{COMMENTS}/{comment['id']}/reactions", headers=headers)
        assert again.status_code == 404
        assert await fetch(CommentReaction, comment_id=uuid.UUID(comment["id"])) is None
