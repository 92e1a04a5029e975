import os, uvicorn
from agents.intake.app import build_app as build_intake

AGENT_NAME = os.getenv("AGENT_NAME","intake")

if AGENT_NAME != "intake":
    raise RuntimeError(f"Only the intake agent is wired in this service. Got AGENT_NAME={AGENT_NAME}")

app = build_intake()

if __name__ == "__main__":
    # Fast local run; uvicorn CLI also works
    port = int(os.getenv("PORT","8001"))
    uvicorn.run("service.main:app", host="0.0.0.0", port=port, reload=False)
