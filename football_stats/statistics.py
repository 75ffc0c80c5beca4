"""
Descriptive statistics over match lists: both-teams-scored rates, goal
averages, form percentages, head-to-head records and a simple baseline
prediction. Percentages are on a 0-100 scale rounded to two decimals, which is
what the dashboard renders.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .domain.models import HOME, Match, recency_key
from .features import form_ratio, head_to_head_matches, team_matches


def merge_recent(*slices: Sequence[Match]) -> List[Match]:
    """Union of several recency-ordered slices, deduplicated, most recent first."""
    seen: Dict[Match, None] = {}
    for rows in slices:
        for match in rows:
            seen.setdefault(match, None)
    return sorted(seen, key=recency_key, reverse=True)


def _pct(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def both_teams_scored_percentage(matches: Sequence[Match]) -> float:
    return _pct(sum(1 for m in matches if m.both_teams_scored), len(matches))


def average_goals(matches: Sequence[Match]) -> Dict[str, float]:
    if not matches:
        return {"average_total_goals": 0.0, "average_home_goals": 0.0, "average_away_goals": 0.0}
    n = len(matches)
    home = sum(m.full_time_home_goals for m in matches)
    away = sum(m.full_time_away_goals for m in matches)
    return {
        "average_total_goals": round((home + away) / n, 2),
        "average_home_goals": round(home / n, 2),
        "average_away_goals": round(away / n, 2),
    }


def form_index_percentage(matches: Sequence[Match], team: Optional[str], recent_games: int = 5) -> float:
    """Points won over the team's last ``recent_games`` as a percentage of the maximum."""
    if not team:
        return 0.0
    played = team_matches(matches, team)
    if not played:
        return 0.0
    ratio = form_ratio(played, team, recent_games)
    return round(ratio.value * 100, 2)


def head_to_head_record(matches: Sequence[Match]) -> Dict[str, Any]:
    """Home/away/draw split by venue (not by team) over the given fixtures."""
    home_wins = sum(1 for m in matches if m.full_time_home_goals > m.full_time_away_goals)
    away_wins = sum(1 for m in matches if m.full_time_home_goals < m.full_time_away_goals)
    draws = len(matches) - home_wins - away_wins
    total = len(matches)
    return {
        "home_wins": home_wins,
        "away_wins": away_wins,
        "draws": draws,
        "home_win_percentage": _pct(home_wins, total),
        "away_win_percentage": _pct(away_wins, total),
        "draw_percentage": _pct(draws, total),
    }


def expected_goals_for(team: Optional[str], matches: Sequence[Match]) -> float:
    """Average goals scored by ``team`` across the matches it played."""
    if not team:
        return 0.0
    played = team_matches(matches, team)
    if not played:
        return 0.0
    scored = sum(m.scores_for(m.side_of(team))[2] for m in played)
    return round(scored / len(played), 2)


def predict_winner(home_team: Optional[str], away_team: Optional[str], matches: Sequence[Match]) -> Dict[str, Any]:
    """Majority outcome of previous fixtures with the same home/away orientation."""
    if not home_team or not away_team or not matches:
        return {"winner": "unknown", "confidence": 0.0}

    direct = [m for m in matches if m.side_of(home_team) == HOME and m.involves(home_team, away_team)]
    if not direct:
        return {"winner": "unknown", "confidence": 0.0}

    record = head_to_head_record(direct)
    total = len(direct)
    if record["home_wins"] > record["away_wins"] and record["home_wins"] > record["draws"]:
        return {"winner": "home", "confidence": round(record["home_wins"] / total, 2)}
    if record["away_wins"] > record["home_wins"] and record["away_wins"] > record["draws"]:
        return {"winner": "away", "confidence": round(record["away_wins"] / total, 2)}
    return {"winner": "draw", "confidence": round(record["draws"] / total, 2)}


def _outcome_probability(winner: Dict[str, Any], outcome: str) -> float:
    if winner["winner"] == "unknown":
        return round(1 / 3, 2)
    if winner["winner"] == outcome:
        return winner["confidence"]
    return round((1 - winner["confidence"]) / 2, 2)


def run_prediction(home_team: str, away_team: str, matches: Sequence[Match]) -> Dict[str, Any]:
    """Baseline prediction shown next to the heuristic model on the dashboard."""
    home_xg = expected_goals_for(home_team, matches)
    away_xg = expected_goals_for(away_team, matches)
    winner = predict_winner(home_team, away_team, matches)
    return {
        "home_expected_goals": home_xg,
        "away_expected_goals": away_xg,
        "both_teams_to_score_prob": both_teams_scored_percentage(matches),
        "predicted_winner": winner["winner"],
        "confidence": winner["confidence"],
        "model_predictions": {
            "majority": "insufficient_data" if winner["winner"] == "unknown" else f"{winner['winner']}_win",
            "poisson": {"home_goals": round(home_xg), "away_goals": round(away_xg)},
            "outcome": {
                "home_win_prob": _outcome_probability(winner, "home"),
                "draw_prob": _outcome_probability(winner, "draw"),
                "away_win_prob": _outcome_probability(winner, "away"),
            },
        },
    }


def team_analysis(home_team: Optional[str], away_team: Optional[str], matches: Sequence[Match]) -> Optional[Dict[str, Any]]:
    if not home_team or not away_team:
        return None
    meetings = head_to_head_matches(matches, home_team, away_team)
    return {
        "home_team": home_team,
        "away_team": away_team,
        "matches_count": len(meetings),
        "both_teams_scored_percentage": both_teams_scored_percentage(meetings),
        "average_goals": average_goals(meetings),
        "home_form_index": form_index_percentage(matches, home_team),
        "away_form_index": form_index_percentage(matches, away_team),
        "head_to_head_stats": head_to_head_record(meetings),
    }


def calculate_statistics(
    matches: Sequence[Match], home_team: Optional[str] = None, away_team: Optional[str] = None
) -> Dict[str, Any]:
    """General stats for the list, plus team analysis and a baseline when both teams are given."""
    analysis = None
    prediction = None
    if home_team and away_team:
        analysis = team_analysis(home_team, away_team, matches)
        prediction = run_prediction(home_team, away_team, matches)
    return {
        "total_matches": len(matches),
        "team_analysis": analysis,
        "prediction": prediction,
        "general_stats": {
            "both_teams_scored_percentage": both_teams_scored_percentage(matches),
            "average_goals": average_goals(matches),
        },
    }


def team_record(matches: Sequence[Match], team: str, recent: int = 5) -> Dict[str, Any]:
    """Win/draw/loss record, goals and venue split for one team."""
    played = team_matches(matches, team)
    wins = draws = losses = scored = conceded = home_matches = 0
    for match in played:
        side = match.side_of(team)
        if side == HOME:
            home_matches += 1
        _, _, ft_for, ft_against = match.scores_for(side)
        scored += ft_for
        conceded += ft_against
        if ft_for > ft_against:
            wins += 1
        elif ft_for == ft_against:
            draws += 1
        else:
            losses += 1

    recent_form: List[Dict[str, Any]] = []
    for match in played[:recent]:
        _, _, ft_for, ft_against = match.scores_for(match.side_of(team))
        result = "W" if ft_for > ft_against else ("D" if ft_for == ft_against else "L")
        recent_form.append({**match.to_dict(), "result": result})

    return {
        "team": team,
        "total_matches": len(played),
        "wins": wins,
        "draws": draws,
        "losses": losses,
        "goals_scored": scored,
        "goals_conceded": conceded,
        "home_matches": home_matches,
        "away_matches": len(played) - home_matches,
        "recent_form": recent_form,
    }
