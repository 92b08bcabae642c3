"""Language model stand-ins for scan tests."""
from backend.app.services.llm_adapter import LLMAdapter, LLMAdapterConfig


class ScriptedAdapter(LLMAdapter):
    """Returns a fixed reply, or raises it when it is an exception."""

    def __init__(self, reply):
        super().__init__(LLMAdapterConfig(provider="mock", model_name="scripted"))
        self.reply = reply
        self.calls = []

    async def complete(self, messages, max_tokens=1000, temperature=0.7):
        self.calls.append(messages)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self._response(messages, self.reply, 120, 40)
