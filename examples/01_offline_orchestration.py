# examples/01_offline_orchestration.py
"""
🚀 OFFLINE QUICKSTART: Routing, Fallback and Memory

Runs entirely offline with EchoBackend plus a deliberately flaky backend,
so you can watch the circuit breaker and fallback chain at work.
"""

import asyncio

from chuk_ai_orchestrator import CallOptions, EchoBackend, Orchestrator, TransportError


class FlakyBackend(EchoBackend):
    """Echo backend whose Claude models are always down."""

    async def invoke(self, backend_id, prompt, max_tokens=2000, temperature=0.7):
        if backend_id.startswith("anthropic/"):
            self.calls.append(backend_id)
            raise TransportError(backend_id, "simulated outage")
        return await super().invoke(backend_id, prompt, max_tokens, temperature)


async def main():
    backend = FlakyBackend()
    orchestrator = Orchestrator(backend, on_event=lambda e: print(f"   📡 {e.event_type.value} {e.backend_id or ''}"))

    print("💬 Conversation with memory")
    print("=" * 30)
    for question in ["I'm building a rate limiter in Python.", "Which algorithm should I start with?"]:
        reply = await orchestrator.call(question, "chat", thread_id="demo")
        print(f"👤 {question}\n🤖 {reply[:120]}\n")

    print("🔧 Coding calls while the coding model is down")
    print("=" * 30)
    for i in range(3):
        reply = await orchestrator.call(f"Implement a token bucket, attempt {i}", "coding", CallOptions(use_cache=False))
        print(f"✅ Answered by: {reply.split(':', 1)[0]}")

    print("\n📊 Health")
    for backend_id, snap in orchestrator.get_health_status().items():
        print(f"   {backend_id:32} {snap.circuit_state.value:6} success={snap.success_rate:.2f}")

    context = orchestrator.get_enhanced_context("demo")
    print(f"\n🧠 Thread 'demo' holds {len(context.primary_context)} fragments")

    await orchestrator.stop()


if __name__ == "__main__":
    asyncio.run(main())
