from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from ewscope.ew.core.channel import Channel
from ewscope.ew.core.comparator import compare_summary, confluence_score, is_confluent
from ewscope.ew.core.model import Swing
from ewscope.ew.core.scenario import Scenario, TrendBias
from ewscope.ew.core.scorer import ConfidenceBreakdown
from ewscope.ew.detectors.analyzer import AnalysisResult
from ewscope.ew.detectors.multidegree import MultiDegreeResult, ScenarioAssessment


def _num(v: float) -> Optional[float]:
    return None if v is None or math.isnan(v) else float(v)


def _fmt_price(v: float) -> str:
    return "n/a" if v is None or math.isnan(v) else f"{v:.4f}"


def _bias_str(bias: TrendBias) -> str:
    cons = " consensus" if bias.consensus else ""
    return f"bias={bias.direction.value} score={bias.score:+.2f}{cons}"


def swing_to_dict(s: Swing) -> Dict[str, Any]:
    return {
        "from_index": s.from_index,
        "to_index": s.to_index,
        "from_price": s.from_price,
        "to_price": s.to_price,
        "degree": s.degree.name,
    }


def scenario_to_dict(s: Scenario, breakdown: Optional[ConfidenceBreakdown] = None) -> Dict[str, Any]:
    c = s.confidence
    out: Dict[str, Any] = {
        "id": s.id,
        "type": s.type.value,
        "phase": s.phase.name,
        "degree": s.degree.name,
        "direction": s.direction.value,
        "start_index": s.start_index,
        "confidence": {
            "overall": _num(c.overall),
            "fibonacci": _num(c.fibonacci),
            "time": _num(c.time),
            "alternation": _num(c.alternation),
            "channel": _num(c.channel),
            "completeness": _num(c.completeness),
            "primary_reason": c.primary_reason,
        },
        "invalidation_price": _num(s.invalidation_price),
        "primary_target": _num(s.primary_target),
        "all_targets": [_num(t) for t in s.all_targets],
        "swings": [swing_to_dict(w) for w in s.swings],
    }
    if breakdown is not None:
        out["factors"] = [
            {"name": f.name, "score": _num(f.score), "weight": f.weight, "contribution": _num(f.contribution)}
            for f in breakdown.factors
        ]
    return out


def channel_to_dict(ch: Channel) -> Optional[Dict[str, Any]]:
    if not ch.is_valid:
        return None
    return {"upper": ch.upper, "lower": ch.lower, "median": ch.median}


def analysis_to_dict(result: AnalysisResult) -> Dict[str, Any]:
    bias = result.trend_bias
    return {
        "degree": result.degree.name,
        "index": result.index,
        "raw_swings": len(result.raw_swings),
        "swings": [swing_to_dict(s) for s in result.processed_swings],
        "channel": channel_to_dict(result.channel),
        "summary": result.scenario_set.summary(),
        "trend_bias": {
            "direction": bias.direction.value,
            "score": _num(bias.score),
            "consensus": bias.consensus,
            "bullish_weight": bias.bullish_weight,
            "bearish_weight": bias.bearish_weight,
            "known_direction_count": bias.known_direction_count,
            "total_scenarios": bias.total_scenarios,
        },
        "scenarios": [scenario_to_dict(s, result.breakdown(s.id)) for s in result.scenario_set],
    }


def _assessment_to_dict(a: ScenarioAssessment) -> Dict[str, Any]:
    return {
        "scenario_id": a.scenario.id,
        "phase": a.scenario.phase.name,
        "type": a.scenario.type.value,
        "confidence": _num(a.confidence_score),
        "cross_degree": _num(a.cross_degree_score),
        "composite": _num(a.composite_score),
        "supporting": [
            {
                "degree": m.degree.name,
                "scenario_id": m.scenario_id,
                "confidence": _num(m.supporting_confidence),
                "compatibility": _num(m.compatibility),
                "history_fit": _num(m.history_fit_score),
            }
            for m in a.supporting_matches
        ],
    }


def multi_degree_to_dict(result: MultiDegreeResult) -> Dict[str, Any]:
    return {
        "base_degree": result.base_degree.name,
        "degrees": [
            {
                "degree": a.degree.name,
                "bars": a.bar_count,
                "history_fit": a.history_fit_score,
                "analysis": analysis_to_dict(a.analysis),
            }
            for a in result.analyses
        ],
        "ranked": [_assessment_to_dict(a) for a in result.ranked],
        "notes": list(result.notes),
    }


def _last_price(result: AnalysisResult) -> float:
    if not result.processed_swings:
        return math.nan
    return result.processed_swings[-1].to_price


def _compact_lines(result: AnalysisResult) -> List[str]:
    lines: List[str] = []
    lines.append(
        f"degree={result.degree.name} index={result.index} "
        f"swings={len(result.processed_swings)} {_bias_str(result.trend_bias)}"
    )
    lines.append(result.scenario_set.summary())
    base = result.base_scenario
    if base is not None:
        lines.append(
            f"base={base.id} {base.phase.name} conf={base.confidence_score:.2f} "
            f"inval={_fmt_price(base.invalidation_price)} target={_fmt_price(base.primary_target)}"
        )
    return lines


def _pretty_lines(result: AnalysisResult, markdown: bool) -> List[str]:
    b = "**" if markdown else ""
    lines: List[str] = []
    lines.append(f"{b}Elliott Wave analysis{b} ({result.degree.name}, bar {result.index})")
    lines.append(f"swings: raw={len(result.raw_swings)} processed={len(result.processed_swings)}")
    ch = result.channel
    if ch.is_valid:
        lines.append(f"channel: upper={ch.upper:.4f} median={ch.median:.4f} lower={ch.lower:.4f}")
        price = _last_price(result)
        score = confluence_score(price, result.processed_swings, ch)
        lines.append(f"confluence={score}" + (" (confluent)" if is_confluent(score) else ""))
    lines.append(_bias_str(result.trend_bias))
    lines.append("")
    scenarios = result.scenario_set.all()
    if not scenarios:
        lines.append("No scenarios")
        return lines
    lines.append(f"{b}Scenarios{b}:")
    for i, s in enumerate(scenarios, 1):
        lines.append(
            f" {i}) {s.id} {s.type.value} {s.phase.name} {s.direction.value} "
            f"conf={s.confidence.as_percentage:.1f}% ({s.confidence.primary_reason})"
        )
        targets = ", ".join(_fmt_price(t) for t in s.all_targets) or "none"
        lines.append(f"    invalidation={_fmt_price(s.invalidation_price)} targets=[{targets}]")
    if len(scenarios) > 1:
        lines.append("")
        lines.extend(compare_summary(scenarios[0], scenarios[1]).splitlines())
    return lines


def _normalize(fmt: str) -> str:
    fmt = (fmt or "compact").strip().lower()
    if fmt not in ("compact", "pretty"):
        fmt = "compact"
    return fmt


def render_analysis(result: AnalysisResult, *, fmt: str = "compact", markdown: bool = False) -> str:
    """Render a single-degree result.

    fmt:
      - compact: short summary (default)
      - pretty : one block per scenario plus channel and comparison

    markdown:
      - bold headings only, for chat transports.
    """
    if _normalize(fmt) == "compact":
        lines = _compact_lines(result)
    else:
        lines = _pretty_lines(result, markdown=markdown)
    return "\n".join(lines)


def render_multi_degree(result: MultiDegreeResult, *, fmt: str = "compact", markdown: bool = False) -> str:
    fmt = _normalize(fmt)
    b = "**" if markdown else ""
    lines: List[str] = []
    degrees = ",".join(a.degree.name for a in result.analyses)
    lines.append(f"{b}Multi-degree analysis{b} base={result.base_degree.name} degrees={degrees}")
    show = result.ranked[:1] if fmt == "compact" else result.ranked
    for i, a in enumerate(show, 1):
        lines.append(
            f" {i}) {a.scenario.id} {a.scenario.phase.name} composite={a.composite_score:.3f} "
            f"own={a.confidence_score:.3f} cross={a.cross_degree_score:.3f}"
        )
        if fmt == "pretty":
            for m in a.supporting_matches:
                lines.append(
                    f"    {m.degree.name}: {m.scenario_id} compat={m.compatibility:.2f} fit={m.history_fit_score:.2f}"
                )
    if not result.ranked:
        lines.append("No scenarios")
    if fmt == "pretty" and result.notes:
        lines.append("")
        lines.append(f"{b}Notes{b}:")
        lines.extend(f"- {n}" for n in result.notes)
    base = result.base_analysis
    if fmt == "pretty" and base is not None:
        lines.append("")
        lines.extend(_pretty_lines(base, markdown=markdown))
    return "\n".join(lines)
