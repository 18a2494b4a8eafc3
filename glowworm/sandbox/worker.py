"""Processing script uploaded into a remote sandbox and run with ``python3``.

It reads its parameters from the environment the sandbox was created with,
analyzes the file given on the command line and writes one JSON document to
``RESULT_PATH``. It only depends on the standard library and, for image
analysis with the ``openai`` provider, the ``openai`` package.
"""
import base64
import json
import mimetypes
import os
import sys
import time

PROMPT = (
    "Analyze this image and reply ONLY with a JSON object with the keys "
    '"description", "objects", "colors", "mood", "confidence" (0 to 1) and "tags".'
)


def analyze_image_openai(path: str, model: str) -> dict:
    from openai import OpenAI

    mime = mimetypes.guess_type(path)[0] or "image/jpeg"
    with open(path, "rb") as f:
        b64 = base64.b64encode(f.read()).decode("utf-8")

    client = OpenAI(api_key=os.environ["OPENAI_API_KEY"])
    response = client.chat.completions.create(
        model=model,
        messages=[{
            "role": "user",
            "content": [
                {"type": "text", "text": PROMPT},
                {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{b64}"}},
            ],
        }],
        max_tokens=500,
    )
    text = (response.choices[0].message.content or "").strip()
    if text.startswith("```"):
        text = "\n".join(l for l in text.split("\n") if not l.strip().startswith("```"))
    return json.loads(text)


def basic_analysis(processing_type: str, path: str) -> dict:
    name = os.path.basename(path)
    if processing_type == "video":
        return {"description": f"Video processed: {name}", "objects": ["video", "motion"], "mood": "dynamic", "confidence": 0.8}
    if processing_type == "audio":
        return {"description": f"Audio processed: {name}", "objects": ["audio", "sound"], "mood": "neutral", "confidence": 0.8}
    if processing_type == "image":
        return {"description": f"Basic image analysis: {name}", "objects": ["image"], "mood": "neutral", "confidence": 0.8}
    return {"description": f"Document processed: {name}", "objects": ["document"], "mood": "neutral", "confidence": 0.8}


def main(argv: list[str]) -> int:
    path = argv[1]
    processing_type = os.environ.get("PROCESSING_TYPE", "document")
    provider = os.environ.get("AI_PROVIDER", "openai")
    model = os.environ.get("MODEL_TYPE", "gpt-4o-mini")
    result_path = os.environ.get("RESULT_PATH", "/tmp/glowworm/result.json")

    started = time.time()
    if processing_type == "image" and provider == "openai" and os.environ.get("OPENAI_API_KEY"):
        ai_analysis = analyze_image_openai(path, model)
    else:
        ai_analysis = basic_analysis(processing_type, path)

    result = {
        "type": processing_type,
        "status": "completed",
        "file_size": os.path.getsize(path),
        "ai_analysis": ai_analysis,
        "elapsed_seconds": round(time.time() - started, 3),
    }
    with open(result_path, "w", encoding="utf-8") as f:
        json.dump(result, f)
    print(f"result written to {result_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
