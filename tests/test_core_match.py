import pytest

from rugby_core import (
    CardReturnEvent,
    ScoreEvent,
    SubstitutionEvent,
    apply_command,
    compute_scoreboard,
    default_state,
)


def _started(session_id="sid", config=None, players=None):
    state = default_state(session_id, config=config, players=players)
    apply_command(state, {"type": "START"})
    return state


def _score(state):
    return compute_scoreboard(state["log"])


def _add_score(state, team, kind, **extra):
    return apply_command(
        state, {"type": "ADD_SCORE", "team": team, "scoreType": kind, **extra}
    )


def test_default_state_has_session_and_defaults():
    state = default_state()
    assert state["sessionId"]
    assert state["status"] == "not_started"
    assert state["log"] == []
    assert state["lastTryTeam"] is None
    assert state["config"]["halfDuration"] == 2400
    assert state["version"] == 0


def test_start_opens_ledger_with_match_start_event():
    state = default_state("sid-start")
    outcome = apply_command(state, {"type": "START"})
    assert outcome.applied
    assert state["status"] == "running"
    assert [ev.type for ev in state["log"]] == ["match-start"]
    assert state["log"][0].half == 1
    assert outcome.cmd_payload["eventId"] == state["log"][0].id

    again = apply_command(state, {"type": "START"})
    assert again.applied is False
    assert len(state["log"]) == 1


def test_scenario_try_then_conversion_and_rejected_away_conversion():
    state = _started()
    _add_score(state, "home", "try")
    assert _score(state)["homeScore"] == 5
    assert state["lastTryTeam"] == "home"

    _add_score(state, "home", "conversion")
    assert _score(state)["homeScore"] == 7
    assert state["lastTryTeam"] is None

    log_len = len(state["log"])
    outcome = _add_score(state, "away", "conversion")
    assert outcome.applied is False
    assert _score(state)["awayScore"] == 0
    assert len(state["log"]) == log_len


def test_conversion_rejected_after_intervening_score():
    state = _started()
    _add_score(state, "home", "try")
    _add_score(state, "away", "penalty")
    outcome = _add_score(state, "home", "conversion")
    assert outcome.applied is False
    assert _score(state) == {"homeScore": 5, "awayScore": 3, "lastTryTeam": None}


def test_card_between_try_and_conversion_keeps_eligibility():
    state = _started()
    _add_score(state, "away", "penalty-try")
    apply_command(
        state, {"type": "ADD_CARD", "team": "home", "playerId": "h3", "cardType": "yellow"}
    )
    outcome = _add_score(state, "away", "conversion")
    assert outcome.applied
    assert _score(state)["awayScore"] == 9


def test_scenario_pending_try_then_approve_then_convert():
    state = _started()
    outcome = _add_score(state, "home", "try", pending=True)
    assert outcome.haptic == [100]
    assert _score(state)["homeScore"] == 0
    assert state["lastTryTeam"] is None
    assert _add_score(state, "home", "conversion").applied is False

    event_id = outcome.cmd_payload["eventId"]
    apply_command(state, {"type": "RESOLVE_PENDING", "targetId": event_id, "approved": True})
    assert _score(state)["homeScore"] == 5
    assert state["lastTryTeam"] == "home"

    _add_score(state, "home", "conversion")
    assert _score(state)["homeScore"] == 7


def test_pending_conversion_cannot_be_approved_after_try_was_converted():
    state = _started()
    _add_score(state, "home", "try")
    pending_id = _add_score(state, "home", "conversion", pending=True).cmd_payload["eventId"]
    assert _add_score(state, "home", "conversion").applied
    assert _score(state)["homeScore"] == 7

    outcome = apply_command(
        state, {"type": "RESOLVE_PENDING", "targetId": pending_id, "approved": True}
    )
    assert outcome.applied is False
    assert _score(state) == {"homeScore": 7, "awayScore": 0, "lastTryTeam": None}

    apply_command(state, {"type": "RESOLVE_PENDING", "targetId": pending_id, "approved": False})
    assert not any(ev.id == pending_id for ev in state["log"])


def test_pending_conversion_approved_while_eligible():
    state = _started()
    _add_score(state, "away", "try")
    pending_id = _add_score(state, "away", "conversion", pending=True).cmd_payload["eventId"]
    apply_command(state, {"type": "RESOLVE_PENDING", "targetId": pending_id, "approved": True})
    assert _score(state) == {"homeScore": 0, "awayScore": 7, "lastTryTeam": None}
    assert _add_score(state, "away", "conversion").applied is False


def test_rejecting_pending_twice_is_a_noop():
    state = _started()
    event_id = _add_score(state, "away", "try", pending=True).cmd_payload["eventId"]

    first = apply_command(
        state, {"type": "RESOLVE_PENDING", "targetId": event_id, "approved": False}
    )
    assert first.applied
    assert not any(isinstance(ev, ScoreEvent) for ev in state["log"])

    second = apply_command(
        state, {"type": "RESOLVE_PENDING", "targetId": event_id, "approved": False}
    )
    assert second.applied is False
    assert _score(state)["awayScore"] == 0


def test_resolving_confirmed_event_is_ignored():
    state = _started()
    event_id = _add_score(state, "home", "penalty").cmd_payload["eventId"]
    outcome = apply_command(
        state, {"type": "RESOLVE_PENDING", "targetId": event_id, "approved": False}
    )
    assert outcome.applied is False
    assert _score(state)["homeScore"] == 3


def test_unknown_score_kind_raises():
    state = _started()
    with pytest.raises(ValueError):
        _add_score(state, "home", "field-goal")


def test_score_rejected_before_kickoff():
    state = default_state("sid-pre")
    outcome = _add_score(state, "home", "try")
    assert outcome.applied is False
    assert state["log"] == []


def test_yellow_card_return_time_and_sin_bin_return():
    state = _started()
    state["elapsedSeconds"] = 100
    outcome = apply_command(
        state, {"type": "ADD_CARD", "team": "home", "playerId": "h7", "cardType": "yellow"}
    )
    assert outcome.haptic == [100, 50, 100]
    card = state["log"][-1]
    assert card.return_time == 700
    assert card.returned is False

    apply_command(state, {"type": "RETURN_FROM_SIN_BIN", "cardId": card.id})
    returned = next(ev for ev in state["log"] if ev.id == card.id)
    assert returned.returned is True
    back = state["log"][-1]
    assert isinstance(back, CardReturnEvent)
    assert back.card_id == card.id and back.player_id == "h7"

    again = apply_command(state, {"type": "RETURN_FROM_SIN_BIN", "cardId": card.id})
    assert again.applied is False


def test_red_card_has_no_return_time_and_cannot_return():
    state = _started()
    apply_command(
        state, {"type": "ADD_CARD", "team": "away", "playerId": "a1", "cardType": "red"}
    )
    card = state["log"][-1]
    assert card.return_time is None
    outcome = apply_command(state, {"type": "RETURN_FROM_SIN_BIN", "cardId": card.id})
    assert outcome.applied is False


def test_substitution_registers_new_player():
    state = _started(players=[{"id": "h1", "number": 1, "isStarter": True, "team": "home"}])
    apply_command(
        state,
        {
            "type": "ADD_SUBSTITUTION",
            "team": "home",
            "offPlayerId": "h1",
            "onPlayerId": "h99",
            "newPlayer": {"number": 24, "name": "Late Call-up", "isStarter": True},
        },
    )
    new_player = next(p for p in state["players"] if p["id"] == "h99")
    assert new_player["team"] == "home"
    assert new_player["number"] == 24
    assert new_player["isStarter"] is False
    assert isinstance(state["log"][-1], SubstitutionEvent)


def test_undo_conversion_restores_eligibility():
    state = _started()
    _add_score(state, "home", "try")
    _add_score(state, "home", "conversion")
    outcome = apply_command(state, {"type": "UNDO"})
    assert outcome.haptic == [30]
    assert _score(state)["homeScore"] == 5
    assert state["lastTryTeam"] == "home"
    assert _add_score(state, "home", "conversion").applied


def test_undo_try_clears_eligibility():
    state = _started()
    _add_score(state, "away", "penalty")
    _add_score(state, "home", "try")
    apply_command(state, {"type": "UNDO"})
    assert _score(state) == {"homeScore": 0, "awayScore": 3, "lastTryTeam": None}
    assert state["lastTryTeam"] is None


def test_undo_picks_most_recent_across_kinds():
    state = _started()
    _add_score(state, "home", "try")
    apply_command(
        state, {"type": "ADD_CARD", "team": "away", "playerId": "a4", "cardType": "yellow"}
    )
    apply_command(state, {"type": "UNDO"})
    assert not any(ev.type == "card" for ev in state["log"])
    assert _score(state)["homeScore"] == 5

    apply_command(state, {"type": "UNDO"})
    assert _score(state)["homeScore"] == 0


def test_undo_card_drops_its_return_event():
    state = _started()
    apply_command(
        state, {"type": "ADD_CARD", "team": "home", "playerId": "h2", "cardType": "yellow"}
    )
    card_id = state["log"][-1].id
    apply_command(state, {"type": "RETURN_FROM_SIN_BIN", "cardId": card_id})
    apply_command(state, {"type": "UNDO"})
    assert [ev.type for ev in state["log"]] == ["match-start"]


def test_undo_tie_goes_to_later_insertion():
    state = _started()
    stamp = state["log"][0].timestamp + 10
    score = ScoreEvent(id="s1", timestamp=stamp, team="home", score_type="try")
    sub = SubstitutionEvent(
        id="sub1", timestamp=stamp, team="home", off_player_id="h1", on_player_id="h16"
    )
    state["log"] = state["log"] + [sub, score]
    state["lastTryTeam"] = "home"

    apply_command(state, {"type": "UNDO"})
    assert [ev.id for ev in state["log"][1:]] == ["sub1"]
    assert state["lastTryTeam"] is None


def test_undo_on_empty_ledger_is_noop():
    state = _started()
    version = state["version"]
    outcome = apply_command(state, {"type": "UNDO"})
    assert outcome.applied is False
    assert state["version"] == version
    assert len(state["log"]) == 1


def test_remove_historical_try_recomputes_everything():
    state = _started()
    try_id = _add_score(state, "home", "try").cmd_payload["eventId"]
    _add_score(state, "home", "conversion")
    _add_score(state, "away", "try")
    assert state["lastTryTeam"] == "away"

    apply_command(state, {"type": "REMOVE_SCORE_EVENT", "targetId": try_id})
    assert _score(state) == {"homeScore": 2, "awayScore": 5, "lastTryTeam": "away"}
    assert state["lastTryTeam"] == "away"


def test_remove_unknown_ids_are_noops():
    state = _started()
    for ctype in ("REMOVE_SCORE_EVENT", "REMOVE_CARD", "REMOVE_SUBSTITUTION", "REASSIGN_SCORE_PLAYER"):
        outcome = apply_command(state, {"type": ctype, "targetId": "missing"})
        assert outcome.applied is False


def test_remove_card_and_substitution():
    state = _started()
    card_id = apply_command(
        state, {"type": "ADD_CARD", "team": "home", "playerId": "h5", "cardType": "red"}
    ).cmd_payload["eventId"]
    sub_id = apply_command(
        state,
        {"type": "ADD_SUBSTITUTION", "team": "away", "offPlayerId": "a1", "onPlayerId": "a16"},
    ).cmd_payload["eventId"]
    _add_score(state, "away", "drop-goal")

    apply_command(state, {"type": "REMOVE_CARD", "targetId": card_id})
    apply_command(state, {"type": "REMOVE_SUBSTITUTION", "targetId": sub_id})
    assert [ev.type for ev in state["log"]] == ["match-start", "score"]
    assert _score(state)["awayScore"] == 3


def test_reassign_score_player_to_and_from_unknown():
    state = _started()
    event_id = _add_score(state, "home", "try", playerId="h11").cmd_payload["eventId"]

    apply_command(state, {"type": "REASSIGN_SCORE_PLAYER", "targetId": event_id})
    assert state["log"][-1].player_id is None

    apply_command(
        state, {"type": "REASSIGN_SCORE_PLAYER", "targetId": event_id, "playerId": "h14"}
    )
    assert state["log"][-1].player_id == "h14"
    assert _score(state)["homeScore"] == 5
    assert state["lastTryTeam"] == "home"


def test_score_consistency_after_mixed_operations():
    state = _started()
    ids = [
        _add_score(state, "home", "try").cmd_payload["eventId"],
        _add_score(state, "home", "conversion").cmd_payload["eventId"],
        _add_score(state, "away", "penalty").cmd_payload["eventId"],
        _add_score(state, "away", "try", pending=True).cmd_payload["eventId"],
        _add_score(state, "home", "drop-goal").cmd_payload["eventId"],
    ]
    apply_command(state, {"type": "REMOVE_SCORE_EVENT", "targetId": ids[0]})
    apply_command(state, {"type": "RESOLVE_PENDING", "targetId": ids[3], "approved": True})
    apply_command(state, {"type": "UNDO"})
    apply_command(state, {"type": "REASSIGN_SCORE_PLAYER", "targetId": ids[2], "playerId": "a10"})

    board = _score(state)
    for side in ("home", "away"):
        expected = sum(
            ev.points
            for ev in state["log"]
            if isinstance(ev, ScoreEvent) and ev.team == side and not ev.pending
        )
        assert board[f"{side}Score"] == expected


def test_timestamps_are_strictly_increasing():
    state = _started()
    _add_score(state, "home", "penalty", timestamp=5)
    _add_score(state, "home", "penalty", timestamp=5)
    stamps = [ev.timestamp for ev in state["log"]]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


def test_tick_only_advances_while_running():
    state = default_state("sid-tick")
    assert apply_command(state, {"type": "TICK"}).applied is False
    assert state["elapsedSeconds"] == 0

    apply_command(state, {"type": "START"})
    apply_command(state, {"type": "TICK"})
    apply_command(state, {"type": "TOGGLE_TIMER"})
    assert state["status"] == "paused"
    assert apply_command(state, {"type": "TICK"}).applied is False
    assert state["elapsedSeconds"] == 1


def test_tick_auto_pauses_once_at_half_duration():
    state = _started(config={"halfDuration": 3})
    apply_command(state, {"type": "TICK"})
    apply_command(state, {"type": "TICK"})
    outcome = apply_command(state, {"type": "TICK"})
    assert state["elapsedSeconds"] == 3
    assert state["status"] == "paused"
    assert outcome.cmd_payload["halfTimeReached"] is True

    apply_command(state, {"type": "TOGGLE_TIMER"})
    outcome = apply_command(state, {"type": "TICK"})
    assert state["status"] == "running"
    assert state["elapsedSeconds"] == 4
    assert "halfTimeReached" not in outcome.cmd_payload


def test_next_half_marks_half_time_and_resets_clock():
    state = _started()
    state["elapsedSeconds"] = 2450
    apply_command(state, {"type": "ADD_INJURY_TIME"})
    apply_command(state, {"type": "ADD_INJURY_TIME"})
    assert state["injuryTime"] == 120

    apply_command(state, {"type": "NEXT_HALF"})
    marker = state["log"][-1]
    assert marker.type == "half-time"
    assert marker.half == 1
    assert marker.match_time == 2450
    assert state["currentHalf"] == 2
    assert state["elapsedSeconds"] == 0
    assert state["injuryTime"] == 0
    assert state["status"] == "half_break"

    assert apply_command(state, {"type": "TICK"}).applied is False
    apply_command(state, {"type": "TOGGLE_TIMER"})
    assert state["status"] == "running"


def test_end_completes_match_and_freezes_ledger():
    state = _started()
    _add_score(state, "home", "try")
    outcome = apply_command(state, {"type": "END"})
    assert outcome.snapshot_required
    assert state["status"] == "completed"
    assert state["log"][-1].type == "match-end"

    frozen = list(state["log"])
    for cmd in (
        {"type": "ADD_SCORE", "team": "away", "scoreType": "try"},
        {"type": "UNDO"},
        {"type": "TICK"},
        {"type": "START"},
        {"type": "END"},
    ):
        assert apply_command(state, cmd).applied is False
    assert state["log"] == frozen


def test_unknown_command_type_raises():
    state = _started()
    with pytest.raises(ValueError):
        apply_command(state, {"type": "KICK_OFF"})
