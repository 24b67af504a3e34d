"""TwiML documents returned to Twilio."""
from twilio.twiml.voice_response import VoiceResponse

from app.core.config import Settings


# Closing lines spoken before hanging up
INVALID_CALL_MESSAGE = "Sorry, an error occurred. This call is not valid."
MENU_PROMPT = "To learn more, press 1. To stop receiving calls, press 2."
INTERESTED_MESSAGE = (
    "Thank you for your interest. One of our advisors will contact you shortly "
    "with more information."
)
OPT_OUT_MESSAGE = "Your request has been noted. You will not be contacted again. Goodbye."
UNRECOGNIZED_MESSAGE = "Sorry, I did not understand your answer. Thank you for your time, goodbye."
NO_INPUT_MESSAGE = "We did not receive a response. We will call you back later. Goodbye."

GATHER_TIMEOUT_SECONDS = 5
GATHER_NUM_DIGITS = 1
SCRIPT_PAUSE_SECONDS = 1


class VoicePromptBuilder:
    """Builds TwiML with the configured voice and language."""

    def __init__(self, settings: Settings):
        self.voice = settings.voice
        self.language = settings.language

    def _say(self, target, text: str) -> None:
        target.say(text, voice=self.voice, language=self.language)

    def say_and_hangup(self, text: str) -> str:
        """Speak a closing line then end the call."""
        response = VoiceResponse()
        self._say(response, text)
        response.hangup()
        return str(response)

    def hangup(self) -> str:
        response = VoiceResponse()
        response.hangup()
        return str(response)

    def invalid_call(self) -> str:
        return self.say_and_hangup(INVALID_CALL_MESSAGE)

    def script_with_gather(self, script: str, gather_url: str, no_input_url: str) -> str:
        """
        Speak the script, then collect one digit or a short utterance.

        If the caller stays silent the Gather falls through to a redirect to
        the no-input handler.
        """
        response = VoiceResponse()
        self._say(response, script)
        response.pause(length=SCRIPT_PAUSE_SECONDS)

        gather = response.gather(
            input="dtmf speech",
            timeout=GATHER_TIMEOUT_SECONDS,
            num_digits=GATHER_NUM_DIGITS,
            action=gather_url,
            method="POST",
        )
        self._say(gather, MENU_PROMPT)

        response.redirect(no_input_url, method="POST")
        return str(response)
