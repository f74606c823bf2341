import pytest

from api.models import TELL_LATEST_TIP_INTENT
from api.services.opt_in import (
    PUSH_CONFIRMED,
    PUSH_DECLINED,
    UPDATES_CONFIRMED,
    UPDATES_DECLINED,
    OptInWorkflow,
)
from api.services.storage import ConsentStore
from lib.error_handler import StoreError

def make_workflow(db):
    return OptInWorkflow(ConsentStore(db, table='users'))

def test_request_push_names_target_intent(make_supabase):
    db = make_supabase()
    reply = make_workflow(db).request_push()

    assert reply.permission_intent == TELL_LATEST_TIP_INTENT
    assert reply.system_intent['data']['permissions'] == ['UPDATE']
    assert db.calls == []

@pytest.mark.asyncio
async def test_granted_permission_writes_one_consent(make_supabase):
    db = make_supabase()
    reply = await make_workflow(db).finish_push_setup(True, 'user-123')

    assert db.tables['users'] == [{'id': 1, 'userId': 'user-123', 'intent': TELL_LATEST_TIP_INTENT}]
    assert reply.speech == [PUSH_CONFIRMED]
    assert reply.expect_user_response is False

@pytest.mark.asyncio
async def test_declined_permission_writes_nothing(make_supabase):
    db = make_supabase()
    reply = await make_workflow(db).finish_push_setup(False, 'user-123')

    assert db.writes() == []
    assert reply.speech == [PUSH_DECLINED]
    assert reply.expect_user_response is False

@pytest.mark.asyncio
async def test_granted_without_user_id_writes_nothing(make_supabase):
    db = make_supabase()
    reply = await make_workflow(db).finish_push_setup(True, None)

    assert db.writes() == []
    assert reply.speech == [PUSH_DECLINED]

@pytest.mark.asyncio
async def test_repeat_consent_creates_duplicates(make_supabase):
    db = make_supabase()
    workflow = make_workflow(db)

    await workflow.finish_push_setup(True, 'user-123')
    await workflow.finish_push_setup(True, 'user-123')

    rows = db.tables['users']
    assert len(rows) == 2
    assert {row['userId'] for row in rows} == {'user-123'}

@pytest.mark.asyncio
async def test_store_failure_propagates(make_supabase):
    db = make_supabase(fail=RuntimeError("connection reset"))

    with pytest.raises(StoreError):
        await make_workflow(db).finish_push_setup(True, 'user-123')

def test_request_daily_updates(make_supabase):
    reply = make_workflow(make_supabase()).request_daily_updates('design')

    data = reply.system_intent['data']
    assert reply.system_intent['intent'] == 'actions.intent.REGISTER_UPDATE'
    assert data['intent'] == 'tell_tip'
    assert data['arguments'] == [{'name': 'category', 'textValue': 'design'}]
    assert data['triggerContext']['timeContext']['frequency'] == 'DAILY'

def test_finish_update_setup(make_supabase):
    workflow = make_workflow(make_supabase())

    assert workflow.finish_update_setup({'status': 'OK'}).speech == [UPDATES_CONFIRMED]
    assert workflow.finish_update_setup({'status': 'CANCELLED'}).speech == [UPDATES_DECLINED]
    declined = workflow.finish_update_setup(None)
    assert declined.speech == [UPDATES_DECLINED]
    assert declined.expect_user_response is False
