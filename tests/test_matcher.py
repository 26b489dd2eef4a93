import os
import sys
from datetime import timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from qa_engine.models import Interaction
from qa_engine.services.matcher import has_required_content, normalize_agent_id
from qa_engine.utils.time import utcnow


def _ids(rows):
    return {r.id for r in rows}


def test_content_eligibility_per_channel():
    assert has_required_content(Interaction(channel="call", recording_path="a.wav"))
    assert not has_required_content(Interaction(channel="call", recording_path=""))
    assert not has_required_content(Interaction(channel="voice", recording_path=None))
    assert has_required_content(Interaction(channel="email", email_count=1, message_count=0))
    assert not has_required_content(Interaction(channel="email", email_count=0, message_count=4))
    assert has_required_content(Interaction(channel="whatsapp", message_count=2))
    assert not has_required_content(Interaction(channel="whatsapp", message_count=2), min_text_items=3)
    assert not has_required_content(Interaction(channel="fax", message_count=10))


def test_normalize_agent_id():
    assert normalize_agent_id("007") == "7"
    assert normalize_agent_id(7) == "7"
    assert normalize_agent_id(" agent-a ") == "agent-a"
    assert normalize_agent_id("") is None


def test_match_excludes_ineligible_and_evaluated(services, make_profile, make_interaction):
    good = make_interaction()
    make_interaction(recording_path=None)
    make_interaction(channel="chat", message_count=0, recording_path=None)
    make_interaction(evaluated=True)
    chat = make_interaction(channel="chat", message_count=3, recording_path=None)
    profile = make_profile()

    assert _ids(services.matcher.match(profile)) == {good.id, chat.id}
    assert len(services.matcher.match(profile, exclude_evaluated=False)) == 3


def test_match_filters(services, make_profile, make_interaction):
    hit = make_interaction(agent_id="7", queue_name="Billing", work_code="SALE", direction="outbound",
                           duration_sec=300)
    make_interaction(agent_id="8", queue_name="Billing", work_code="SALE", direction="outbound",
                     duration_sec=300)
    make_interaction(agent_id="7", queue_id="99", queue_name="Sales", work_code="SALE",
                     direction="outbound", duration_sec=300)
    make_interaction(agent_id="7", queue_name="Billing", work_code="REFUND", direction="outbound",
                     duration_sec=300)
    make_interaction(agent_id="7", queue_name="Billing", work_code="SALE", direction="inbound",
                     duration_sec=300)
    make_interaction(agent_id="7", queue_name="Billing", work_code="SALE", direction="outbound",
                     duration_sec=20)
    profile = make_profile(
        agents=[{"agentId": "007"}],
        queues=[{"queueName": "Billing"}],
        work_codes=["SALE"],
        direction="outbound",
        min_call_duration=60,
    )
    assert _ids(services.matcher.match(profile)) == {hit.id}


def test_match_agent_ids_with_leading_zeros_on_either_side(services, make_profile, make_interaction):
    padded = make_interaction(agent_id="007")
    plain = make_interaction(agent_id="7")
    make_interaction(agent_id="70")
    make_interaction(agent_id="8")
    assert _ids(services.matcher.match(make_profile(agents=["7"]))) == {padded.id, plain.id}
    assert _ids(services.matcher.match(make_profile(agents=[{"agentId": "0007"}]))) == {padded.id, plain.id}


def test_match_queue_by_id_or_name(services, make_profile, make_interaction):
    by_id = make_interaction(queue_id="12", queue_name="Renamed")
    by_name = make_interaction(queue_id="55", queue_name="Billing")
    make_interaction(queue_id="56", queue_name="Other")
    profile = make_profile(queues=[{"queueId": "12"}, "Billing"])
    assert _ids(services.matcher.match(profile)) == {by_id.id, by_name.id}


def test_match_channels_and_window(services, make_profile, make_interaction):
    recent = make_interaction(channel="email", email_count=2, recording_path=None)
    make_interaction(channel="email", email_count=2, recording_path=None,
                     created_at=utcnow() - timedelta(hours=30))
    make_interaction(channel="call")
    profile = make_profile(channels=["email"])
    assert _ids(services.matcher.match(profile)) == {recent.id}

    profile.date_from = utcnow() - timedelta(days=2)
    assert len(services.matcher.match(profile)) == 2


def test_match_newest_first_and_limit(services, make_profile, make_interaction):
    old = make_interaction(created_at=utcnow() - timedelta(hours=5))
    new = make_interaction(created_at=utcnow() - timedelta(minutes=5))
    profile = make_profile()
    rows = services.matcher.match(profile)
    assert [r.id for r in rows] == [new.id, old.id]
    assert [r.id for r in services.matcher.match(profile, limit=1)] == [new.id]
