"""Console UI for retype application."""

import requests

from core.metrics import format_elapsed
from cli.api_client import RetypeAPIClient


class ConsoleUI:
    """Console user interface for retype application.

    Each line typed at the prompt replaces the typed text as one edit.
    """

    COMMANDS = ':skip, :back, :status, :quit'

    def __init__(self, client: RetypeAPIClient):
        self.client = client

    def print_sentence(self, state: dict):
        """Print the current sentence with its neighbours."""
        print('\n' + '=' * 60)
        print(f"Sentence {state['current_index'] + 1}/{state['total_sentences']} "
              f"({state['progress_percent']}%)  {state['elapsed_display']}")
        print('=' * 60)
        if state['previous_sentence']:
            print(f"  {state['previous_sentence']}")
        print(f"\n  >>> {state['current_sentence']}\n")
        if state['next_sentence']:
            print(f"  {state['next_sentence']}")
        print('=' * 60)

    def print_mismatch(self, typed: str, target: str):
        """Mark the positions where the typed text differs from the target."""
        markers = ''.join(
            ' ' if i < len(typed) and typed[i] == ch else '^'
            for i, ch in enumerate(target)
        )
        print(f'  target: {target}')
        print(f'  typed:  {typed}')
        print(f'          {markers.rstrip()}')

    def print_status(self, state: dict):
        """Print current metrics."""
        contribution = state['contribution']
        print('\n' + '-' * 40)
        print(f"Time: {state['elapsed_display']}")
        print(f"Accuracy: {state['accuracy']}%")
        print(f"Speed: {state['speed']} chars/min")
        print(f"Productivity: {state['productivity_display']}")
        print(f"Keystrokes: +{contribution['positive']} / -{contribution['negative']} "
              f"/ ={contribution['neutral']}")
        print(f"Skipped: {state['skipped_count']}")
        print('-' * 40)

    def print_results(self, state: dict):
        """Print the final results of a completed run."""
        print('\n' + '=' * 40)
        print('RESULTS')
        print('=' * 40)
        print(f"Time: {format_elapsed(state['elapsed_seconds'])}")
        print(f"Accuracy: {state['accuracy']}%")
        print(f"Speed: {state['speed']} chars/min")
        print(f"Characters typed: {state['committed_chars']}")
        print(f"Contributing keystrokes: {state['contribution']['positive']}")
        print(f"Completed: {len(state['completed_sentences'])}, skipped: {state['skipped_count']}")
        print('=' * 40 + '\n')

    def open_session(self, text: str = None, resume_hash: str = None, randomize: bool = False,
                     **text_options) -> dict | None:
        """Resume saved progress, or start a new run over the text."""
        if resume_hash:
            try:
                state = self.client.resume_session(resume_hash)
                print(f"Restored progress: sentence {state['current_index'] + 1}/{state['total_sentences']}")
                return state
            except requests.HTTPError as e:
                if e.response is None or e.response.status_code != 404:
                    raise
                print(f"No saved progress for {resume_hash}")

        if not text:
            print('No text to practice. Pass --file or --resume.')
            return None

        processed = self.client.process_text(text, **text_options)
        print(f"{processed['sentence_count']} sentences, {processed['character_count']} characters "
              f"(about {processed['estimated_minutes']} min)")
        if processed['content_hash'] in self.client.list_snapshots():
            print(f"Saved progress exists for this text. Resume with --resume {processed['content_hash']}")
        return self.client.start_session(processed['sentences'], randomize=randomize)

    def run(self, text: str = None, resume_hash: str = None, randomize: bool = False,
            **text_options):
        """Run the main practice loop."""
        try:
            health = self.client.health_check()
            print(f"Connected to retype server ({health['service']})")
        except Exception:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print('Make sure the server is running: python run_server.py')
            return

        state = self.open_session(text, resume_hash, randomize, **text_options)
        if state is None:
            return
        content_hash = state['content_hash']
        print(f"Session {content_hash}")
        print(f"Commands: {self.COMMANDS}\n")

        while True:
            state = self.practice(state)
            if state['state'] != 'completed':
                return
            self.print_results(state)
            again = input('Practice again? [y/N] ').strip().lower()
            if again not in ('y', 'yes'):
                return
            state = self.client.retry(content_hash)

    def practice(self, state: dict) -> dict:
        """Prompt for sentences until the run completes or the user quits."""
        content_hash = state['content_hash']
        while state['state'] == 'running':
            self.print_sentence(state)
            line = input('==> ')
            command = line.strip().lower()

            if command == ':quit':
                state = self.client.abandon(content_hash)
                print(f'Progress saved. Resume with --resume {content_hash}')
                return state
            elif command == ':skip':
                state = self.client.skip(content_hash)
                print('Skipped.')
            elif command == ':back':
                state = self.client.go_back(content_hash)
            elif command == ':status':
                state = self.client.get_session(content_hash)
                self.print_status(state)
            else:
                target = state['current_sentence']
                # Typed characters plus Enter
                result = self.client.submit_edit(
                    content_hash,
                    before=state['typed_text'],
                    after=line,
                    inserted=len(line),
                    keystrokes=len(line) + 1
                )
                if result['advanced']:
                    print('Correct!')
                else:
                    self.print_mismatch(line, target)
                state = result

        return state
