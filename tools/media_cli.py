#!/usr/bin/env python3
"""
Interactive shell for the distributed media coordinator.

Each line is parsed by the command parser service and, unless the parser
asks a clarification question, sent to the coordinator.  A line starting
with "{" is treated as a raw JSON command and sent straight to the
coordinator.

Usage:
    python3 tools/media_cli.py [--coordinator http://localhost:8080] [--parser http://localhost:8092]

Env:
    COORDINATOR_BASE_URL, LLM_ADAPTER_BASE_URL
"""

import argparse
import asyncio
import json
import os
import sys

import aiohttp

PROMPT = "> "


def _env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


async def http_json(session: aiohttp.ClientSession, method: str, url: str, body=None):
    """Send JSON, return (status, parsed body).  Non-JSON replies come back as {"raw": text}."""
    async with session.request(method, url, json=body) as resp:
        text = await resp.text()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = {"raw": text}
        return resp.status, data


class MediaShell:
    def __init__(self, session: aiohttp.ClientSession, coordinator_url: str, parser_url: str,
                 out=sys.stdout):
        self.session = session
        self.coordinator_url = coordinator_url.rstrip("/")
        self.parser_url = parser_url.rstrip("/")
        self.out = out

    async def list_targets(self) -> dict:
        status, data = await http_json(self.session, "POST", f"{self.coordinator_url}/command",
                                       {"action": "LIST_TARGETS"})
        if not 200 <= status < 300:
            raise RuntimeError(f"LIST_TARGETS failed: {json.dumps(data)}")
        return data

    async def parse(self, utterance: str, context: dict) -> dict:
        status, data = await http_json(self.session, "POST", f"{self.parser_url}/parse",
                                       {"utterance": utterance, "context": context})
        if not 200 <= status < 300:
            raise RuntimeError(f"parse failed: {json.dumps(data)}")
        return data["output"]

    async def execute(self, command: dict) -> dict:
        _, data = await http_json(self.session, "POST", f"{self.coordinator_url}/command", command)
        return data

    def write(self, text: str):
        self.out.write(text + "\n")
        self.out.flush()

    async def handle_line(self, line: str):
        """Run one input line. Errors are printed, never raised."""
        utterance = line.strip()
        if not utterance:
            return
        try:
            if utterance.startswith("{"):
                command = json.loads(utterance)
            else:
                inventory = await self.list_targets()
                output = await self.parse(utterance, inventory)
                if output.get("clarificationQuestion"):
                    self.write(output["clarificationQuestion"])
                    return
                command = output.get("command")
                if not command:
                    self.write("No command returned.")
                    return

            result = await self.execute(command)
            self.write(json.dumps({"command": command, "coordinator": result}, indent=2))
        except (aiohttp.ClientError, RuntimeError, json.JSONDecodeError, KeyError) as e:
            self.write(str(e) or type(e).__name__)

    async def run(self):
        loop = asyncio.get_running_loop()
        self.write("Distributed Media CLI (type 'exit' to quit)")
        while True:
            self.out.write(PROMPT)
            self.out.flush()
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line or line.strip().lower() == "exit":
                return
            await self.handle_line(line)


async def main(argv=None):
    parser = argparse.ArgumentParser(description="Distributed media interactive shell")
    parser.add_argument("--coordinator", default=_env("COORDINATOR_BASE_URL", "http://localhost:8080"),
                        help="coordinator base URL")
    parser.add_argument("--parser", default=_env("LLM_ADAPTER_BASE_URL", "http://localhost:8092"),
                        help="command parser base URL")
    args = parser.parse_args(argv)

    async with aiohttp.ClientSession() as session:
        await MediaShell(session, args.coordinator, args.parser).run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
