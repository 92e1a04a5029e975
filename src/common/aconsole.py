import asyncio

async def ainput(prompt: str = "") -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: input(prompt))

async def ainput_multiline(prompt: str = "> ", more: str = "… ") -> str:
    """Read one message; a line ending with a backslash continues onto the next line."""
    lines = []
    while True:
        line = await ainput(more if lines else prompt)
        if not line.endswith("\\"):
            lines.append(line)
            return "\n".join(lines)
        lines.append(line[:-1])
