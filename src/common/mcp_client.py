import httpx, uuid, json, logging
log = logging.getLogger("mcp")


class MCPError(RuntimeError):
    pass


class MCPClient:
    """Minimal JSON-RPC 2.0 client for MCP tools/call."""

    def __init__(self, base: str, timeout: float = 15):
        self.base = base.rstrip("/")
        self.endpoint = f"{self.base}/mcp/v1/jsonrpc"
        self.timeout = timeout
        self._initialized = False

    async def _post(self, payload: dict, timeout: float | None = None) -> dict:
        async with httpx.AsyncClient(timeout=timeout or self.timeout) as client:
            r = await client.post(self.endpoint, json=payload)
            r.raise_for_status()
            if not r.content:
                return {}
            return r.json()

    async def initialize(self):
        if self._initialized:
            return
        response = await self._post({
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": "initialize",
            "params": {
                "protocolVersion": "2024-11-05",
                "capabilities": {},
                "clientInfo": {"name": "clinic-intake-agent", "version": "0.1.0"},
            },
        })
        error = response.get("error")
        if error and error.get("message") != "Already initialized":
            raise MCPError(f"MCP initialization failed: {error.get('message')}")
        if not error:
            await self._post({"jsonrpc": "2.0", "method": "notifications/initialized"})
        self._initialized = True
        log.info("[MCP] Session initialized")

    async def call(self, tool_name: str, arguments: dict, timeout: float | None = None) -> dict:
        """
        Call an MCP tool and return its parsed result.

        The first text content item is decoded as JSON when possible,
        otherwise returned as {"text": ...}.
        """
        await self.initialize()
        response = await self._post({
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": "tools/call",
            "params": {"name": tool_name, "arguments": arguments},
        }, timeout=timeout)

        if "error" in response:
            error = response["error"]
            raise MCPError(f"MCP tool '{tool_name}' failed: {error.get('message')} (code: {error.get('code')})")

        result = response.get("result", {})
        content = result.get("content") if isinstance(result, dict) else None
        if content:
            text = content[0].get("text", "{}")
            try:
                return json.loads(text)
            except (json.JSONDecodeError, TypeError):
                return {"text": text}
        return result
