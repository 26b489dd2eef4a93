"""Client for the LLM scoring model.

Calls the OpenAI Responses HTTP API directly with ``requests``. Transport and
parse failures raise :class:`ScoringServiceError` so the job queue can retry
them; without an API key a deterministic dummy result is returned, which is
what development and tests run against.
"""
import json
import re
from typing import Any, Dict

import requests
from flask import current_app

from ..errors import ScoringServiceError

MAX_TRANSCRIPT_CHARS = 24000


def _dummy_score(param):
    if param.scoring_type == "binary":
        return param.max_score
    return min(4, param.max_score)


def build_prompt(rubric, transcript, channel) -> str:
    lines = [
        "You are a contact-center quality analyst. Score the interaction below against each question.",
        "Return only one JSON object: "
        '{"parameters": [{"name": str, "score": number, "explanation": str, "confidence": number}], "summary": str}.',
        "- Use the question name exactly as given.",
        "- Binary questions score either 0 or their max score; variable questions score 0..max.",
        "- If a question is not relevant to this interaction, set its score to -1.",
        "- confidence is between 0 and 1.",
        "--",
        f"Channel: {channel}",
        "Questions:",
    ]
    for p in rubric.parameters:
        line = f"- {p.name} [{p.scoring_type}, max {p.max_score:g}]"
        if p.context:
            line += f": {p.context}"
        lines.append(line)
    text = transcript or ""
    if len(text) > MAX_TRANSCRIPT_CHARS:
        text = text[:MAX_TRANSCRIPT_CHARS] + "...(truncated)"
    lines += ["--", "Transcript:", text]
    return "\n".join(lines)


def _response_text(jr) -> str:
    text = jr.get("output_text") or ""
    if text:
        return text
    parts = []
    for item in jr.get("output") or []:
        if isinstance(item, dict):
            for c in item.get("content", []):
                if isinstance(c, dict) and "text" in c:
                    parts.append(c["text"])
                elif isinstance(c, str):
                    parts.append(c)
        elif isinstance(item, str):
            parts.append(item)
    return "\n".join(parts)


def parse_model_output(text) -> Dict[str, Any]:
    m = re.search(r"\{[\s\S]*\}", text or "")
    if not m:
        raise ScoringServiceError("Scoring model returned no JSON object")
    try:
        data = json.loads(m.group(0))
    except ValueError as e:
        raise ScoringServiceError(f"Scoring model returned invalid JSON: {e}")
    params = data.get("parameters")
    if not isinstance(params, list):
        raise ScoringServiceError("Scoring model output has no parameters list")
    return {"parameters": [p for p in params if isinstance(p, dict) and p.get("name")],
            "summary": data.get("summary") or ""}


def gen_evaluation(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Score one interaction.

    payload keys: rubric (RubricDefinition), transcript (str), channel (str).
    Returns ``{"parameters": [{name, score, explanation, confidence}], "summary": str}``.
    """
    rubric = payload["rubric"]
    transcript = payload.get("transcript") or ""
    channel = payload.get("channel") or ""

    api_key = current_app.config.get("OPENAI_API_KEY")
    if not api_key:
        return {
            "parameters": [
                {"name": p.name, "score": _dummy_score(p), "explanation": "(dummy) no scoring model configured",
                 "confidence": 0.5}
                for p in rubric.parameters
            ],
            "summary": f"(dummy) summary. Transcript excerpt: {transcript[:60]}...",
        }

    body = {
        "model": current_app.config.get("SCORING_MODEL", "gpt-4o-mini"),
        "input": build_prompt(rubric, transcript, channel),
        "max_output_tokens": 1500,
        "temperature": 0.2,
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    try:
        r = requests.post(current_app.config["SCORING_API_URL"], headers=headers, json=body,
                          timeout=current_app.config.get("SCORING_TIMEOUT_SEC", 60))
        r.raise_for_status()
        jr = r.json()
    except requests.exceptions.HTTPError as e:
        status = getattr(e.response, "status_code", None)
        text = e.response.text[:1000] if e.response is not None else None
        current_app.logger.warning("Scoring model HTTP error %s: %s", status, text)
        raise ScoringServiceError(f"Scoring model HTTP error {status}")
    except requests.exceptions.RequestException as e:
        current_app.logger.warning("Scoring model network error: %s", e)
        raise ScoringServiceError(f"Scoring model unreachable: {e}")
    except ValueError:
        raise ScoringServiceError("Scoring model response is not JSON")

    return parse_model_output(_response_text(jr) if isinstance(jr, dict) else "")
