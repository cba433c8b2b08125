import unittest

from chat_relay.errors import ChatValidationError
from chat_relay.validation import parse_generation_config, sanitize_input, validate_chat_input

DEFAULT_MODELS = {"openai": "gpt-4o", "groq": "llama3-70b-8192"}


class GenerationConfigTests(unittest.TestCase):
    def test_defaults_when_config_missing(self) -> None:
        for raw in (None, ""):
            with self.subTest(raw=raw):
                config = parse_generation_config(raw)
                self.assertEqual(config.temperature, 0.7)
                self.assertEqual(config.max_tokens, 2048)
                self.assertEqual(config.top_p, 1.0)
                self.assertIsNone(config.system_prompt)

    def test_temperature_boundary(self) -> None:
        self.assertEqual(parse_generation_config({"temperature": 2.0}).temperature, 2.0)

        with self.assertRaises(ChatValidationError) as ctx:
            parse_generation_config({"temperature": 2.0001})

        self.assertEqual(ctx.exception.error, "Invalid configuration")
        self.assertEqual(ctx.exception.errors, ["Temperature must be a number between 0 and 2"])

    def test_max_tokens_boundary(self) -> None:
        self.assertEqual(parse_generation_config({"maxTokens": 200000}).max_tokens, 200000)

        with self.assertRaises(ChatValidationError) as ctx:
            parse_generation_config({"maxTokens": 200001})

        self.assertEqual(
            ctx.exception.errors, ["Max tokens must be an integer between 1 and 200000"]
        )

    def test_numeric_strings_are_rejected(self) -> None:
        with self.assertRaises(ChatValidationError):
            parse_generation_config({"temperature": "0.7"})

    def test_penalties_are_bounded(self) -> None:
        config = parse_generation_config({"frequencyPenalty": -2, "presencePenalty": 2})
        self.assertEqual((config.frequency_penalty, config.presence_penalty), (-2, 2))

        with self.assertRaises(ChatValidationError):
            parse_generation_config({"presencePenalty": 2.5})

    def test_json_string_config_and_unknown_keys(self) -> None:
        config = parse_generation_config(
            '{"temperature": 1.5, "systemPrompt": "Be brief", "apiKey": "sk-ignored"}'
        )

        self.assertEqual(config.temperature, 1.5)
        self.assertEqual(config.system_prompt, "Be brief")

    def test_malformed_json_config(self) -> None:
        with self.assertRaises(ChatValidationError) as ctx:
            parse_generation_config("{bad")

        self.assertEqual(ctx.exception.message, "Configuration must be a JSON object")

    def test_system_prompt_length(self) -> None:
        parse_generation_config({"systemPrompt": "x" * 4096})

        with self.assertRaises(ChatValidationError):
            parse_generation_config({"systemPrompt": "x" * 4097})

    def test_system_prompt_may_not_be_null(self) -> None:
        with self.assertRaises(ChatValidationError) as ctx:
            parse_generation_config({"systemPrompt": None})

        self.assertEqual(
            ctx.exception.errors, ["System prompt must be a string of at most 4096 characters"]
        )


class SanitizeInputTests(unittest.TestCase):
    def test_trims_and_strips_control_characters(self) -> None:
        self.assertEqual(sanitize_input("  hi\x00there\x7f \n"), "hithere")

    def test_non_string_becomes_empty(self) -> None:
        self.assertEqual(sanitize_input(42), "")

    def test_byte_limit(self) -> None:
        self.assertEqual(sanitize_input("a" * 8192), "a" * 8192)
        self.assertEqual(sanitize_input("a" * 8193), "a" * 8192)

    def test_truncation_keeps_multibyte_characters_whole(self) -> None:
        cleaned = sanitize_input("a" + "é" * 4096)

        self.assertEqual(cleaned, "a" + "é" * 4095)
        self.assertLessEqual(len(cleaned.encode("utf-8")), 8192)


class ValidateChatInputTests(unittest.TestCase):
    def _reject(self, **overrides) -> ChatValidationError:
        kwargs = {
            "message": "hello",
            "provider": "openai",
            "model": None,
            "config": None,
            "default_models": DEFAULT_MODELS,
        }
        kwargs.update(overrides)
        with self.assertRaises(ChatValidationError) as ctx:
            validate_chat_input(**kwargs)
        return ctx.exception

    def test_missing_message(self) -> None:
        error = self._reject(message=None)
        self.assertEqual(error.to_payload(), {
            "error": "Invalid input",
            "message": "Message is required and must be a string",
        })

    def test_empty_after_sanitization(self) -> None:
        error = self._reject(message=" \x00\x01 ")
        self.assertEqual(error.message, "Message cannot be empty")

    def test_unknown_provider_lists_available_providers(self) -> None:
        error = self._reject(provider="not-a-real-provider")

        self.assertEqual(error.error, "Invalid provider")
        self.assertEqual(error.message, "Provider 'not-a-real-provider' is not supported")
        self.assertEqual(error.to_payload()["availableProviders"], ["openai", "groq"])

    def test_message_checked_before_provider(self) -> None:
        error = self._reject(message="", provider="nope")
        self.assertEqual(error.error, "Invalid input")

    def test_non_string_provider_is_invalid_provider(self) -> None:
        for provider in (None, 5, ["openai"], {"id": "openai"}):
            with self.subTest(provider=provider):
                error = self._reject(provider=provider)
                self.assertEqual(error.error, "Invalid provider")
                self.assertEqual(error.to_payload()["availableProviders"], ["openai", "groq"])

    def test_non_string_model_is_invalid_input(self) -> None:
        error = self._reject(model=5)

        self.assertEqual(error.error, "Invalid input")
        self.assertEqual(error.message, "Model must be a string")

    def test_default_model_is_used(self) -> None:
        request = validate_chat_input("  hi  ", "groq", None, {"topP": 0.5}, DEFAULT_MODELS)

        self.assertEqual(request.message, "hi")
        self.assertEqual(request.provider_id, "groq")
        self.assertEqual(request.model_id, "llama3-70b-8192")
        self.assertEqual(request.config.top_p, 0.5)


if __name__ == "__main__":
    unittest.main()
