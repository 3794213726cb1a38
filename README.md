# agentswitcher

A full-screen terminal chat that keeps a single, agent-agnostic conversation
going while you switch between coding-agent command-line tools: Codex, Claude,
Gemini and Pi. Each prompt is sent to the selected tool together with the
session's summary of earlier turns, the recent transcript and any Markdown
standards documents attached to the session.

## Installation

```
pip install .
```

The agent tools you want to use (`codex`, `claude`, `gemini`, `pi`) have to be
installed separately and be on your `PATH`. They are run with `NO_COLOR=1` in
their environment: `codex exec <prompt> --skip-git-repo-check --color never`
(its reply is read from a temporary `--output-last-message` file, with session
metadata and token counts stripped), and `claude -p <prompt>`,
`gemini -p <prompt>`, `pi -p <prompt>` for the others. A request is given up
after ten minutes.

## Usage

Run the application from the project directory you are working in:

```
agentswitcher
agentswitcher --db path/to/sessions.db
```

Sessions, their messages and their attached standards are stored in an SQLite
database, `agentswitcher.db` in the current directory unless `--db` names
another file.

### Home screen

- `Enter` starts a new session with the selected agent, or, when the session
  list has focus, opens the selected recent session
- `Tab` switches focus between the agent list and the session list
- `↑`/`↓` (or `k`/`j`) move the selection
- `r` refreshes the list of the 20 most recently updated sessions
- `q` quits

### Chat screen

- `Enter` sends the prompt; `Alt+Enter` inserts a newline
- `↑`/`↓` browse prompts sent earlier in this run
- `PgUp`/`PgDn` scroll the transcript by half a page
- `Ctrl+T` opens the standards picker
- `Ctrl+G` opens the agent picker to switch the agent of this session; the
  history and standards stay attached (`↑`/`↓` or `Ctrl+P`/`Ctrl+N` move,
  `Enter` confirms, `Esc` cancels)
- `Esc` goes back home
- `Ctrl+C` quits from any screen

If a request fails, the error is shown and the prompt is put back in the input.

### Standards

Standards are Markdown files (`.md`, `.markdown`, `.mdx`) whose contents are
sent with every prompt and which are left out of compaction. In the standards
picker, type a directory (relative paths are resolved against the current
directory, `~` against your home), press `Tab` to autocomplete and cycle
through matching subdirectories, and `Enter` to list its Markdown files. Then
move with `↑`/`↓`, toggle files with `Space` and press `Enter` again to save the
selection; `Tab` returns to the directory input and `Esc` closes the picker
without saving.

### Compaction

Once 12 prompts have accumulated since the last compaction, the current agent
is asked to summarise the uncompacted part of the conversation. The summary is
sent in place of the older turns in later prompts, while the 24 most recent
messages are always sent in full.

## Using the pieces from Python

- `agentswitcher.agent.Runner(kind).run(prompt, timeout)` runs one agent tool
  and returns a `Result` with `output` and `stderr`; on failure it raises
  `AgentRunError`, whose `result` holds whatever was captured.
- `agentswitcher.store.Repository(path)` is a context manager over the SQLite
  store with methods such as `create_session`, `add_exchange`,
  `get_context_snapshot`, `replace_standards` and `save_compaction`; database
  failures raise `StoreError`.
- `agentswitcher.prompts` builds the turn and compaction prompts.

## Limitations

- The input box only appends and deletes at its end; there is no cursor
  movement within the text.
- Replies are shown once the agent process has finished; output is not streamed.
- Mouse input is not handled.

## Running the tests

```
pip install .[test]
pytest
```