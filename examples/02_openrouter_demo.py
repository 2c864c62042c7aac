# examples/02_openrouter_demo.py
"""
🤖 REAL OPENROUTER DEMO

Routes a few questions across real models via OpenRouter.

Setup:
    1. Create .env file in project root with:
       OPENROUTER_API_KEY=your-api-key-here

    2. Or export environment variable:
       export OPENROUTER_API_KEY="your-api-key-here"

Run:
    uv run examples/02_openrouter_demo.py
"""

import asyncio
import os

from dotenv import load_dotenv

from chuk_ai_orchestrator import JsonFileStateStore, OpenRouterBackend, Orchestrator

load_dotenv()


async def main():
    if not os.getenv("OPENROUTER_API_KEY"):
        print("❌ OPENROUTER_API_KEY not found!")
        print("   Add OPENROUTER_API_KEY=... to .env or your environment")
        return

    store = JsonFileStateStore("~/.chuk_orchestrator")
    backend = OpenRouterBackend()

    async with Orchestrator(backend) as orchestrator:
        await orchestrator.load_state(store)

        print("⚡ Single calls")
        print("=" * 30)
        for task_type, prompt in [
            ("chat", "Explain the CAP theorem in one sentence."),
            ("coding", "Write a Python one-liner that flattens a list of lists."),
        ]:
            reply = await orchestrator.call(prompt, task_type, thread_id="openrouter-demo")
            print(f"[{task_type}] {reply}\n")

        print("🤝 Consensus")
        print("=" * 30)
        result = await orchestrator.call_consensus("What is the most common cause of memory leaks in Python?")
        print(f"confidence={result.confidence:.2f}\n{result.consensus}\n")

        status = orchestrator.get_system_status()
        print(f"📊 Cache hit rate: {status.cache.get('hit_rate', 0):.0%}")

        await orchestrator.save_state(store)

    await backend.close()


if __name__ == "__main__":
    asyncio.run(main())
