"""Shell hook snippets printed by ``envscope hook SHELL``.

Each hook re-runs ``envscope export`` whenever the prompt is drawn (bash,
zsh) or the working directory changes (fish), and evaluates its output.
"""

from __future__ import annotations

from typing import Dict

BASH_HOOK = """\
_envscope_hook() { local s=$?; eval "$(envscope export)"; return $s; }
if ! [[ "${PROMPT_COMMAND:-}" =~ _envscope_hook ]]; then PROMPT_COMMAND="_envscope_hook${PROMPT_COMMAND:+;$PROMPT_COMMAND}"; fi
"""

ZSH_HOOK = """\
_envscope_hook() { eval "$(envscope export)"; }
autoload -Uz add-zsh-hook
add-zsh-hook precmd _envscope_hook
"""

FISH_HOOK = """\
function _envscope_hook --on-variable PWD
    envscope export | source
end
envscope export | source
"""

HOOKS: Dict[str, str] = {"bash": BASH_HOOK, "zsh": ZSH_HOOK, "fish": FISH_HOOK}


def hook_script(shell: str) -> str:
    try:
        return HOOKS[shell.lower()]
    except KeyError:
        raise ValueError(
            f"unsupported shell: {shell} (supported: {', '.join(sorted(HOOKS))})"
        ) from None
