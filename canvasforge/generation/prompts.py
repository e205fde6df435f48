"""Chat messages sent to the code generator.

The model is asked for a single JSON object with ``html``, ``css``,
``javascript`` and ``description`` keys.  When a previous version exists it
is included so the model refines it instead of starting over.
"""
from canvasforge.artifacts import ArtifactTriple

SYSTEM_PROMPT = """\
You are an expert game developer who builds small, self-contained browser \
games rendered on a single HTML <canvas>.

Rules:
- The HTML holds a container, one <canvas> and any overlay elements \
(start screen, game-over screen, on-screen touch buttons).
- The CSS lays out the page, centers and scales the canvas and styles the \
overlays. Game objects are never drawn with CSS.
- The JavaScript owns all state, input handling, collision detection and \
rendering, and drives a requestAnimationFrame game loop.
- Support keyboard controls (arrows / WASD) and touch buttons.
- Use plain HTML, CSS and JavaScript only: no libraries, no external assets.
- The game must run as-is with no edits.

Reply with exactly one JSON object with the keys "html", "css", \
"javascript" and "description". "description" is a short summary of what \
you built or changed."""

CREATE_TEMPLATE = """\
Create a new canvas game from this concept:

"{prompt}"
"""

REFINE_TEMPLATE = """\
Improve the existing canvas game below according to this feedback:

"{prompt}"

Previous HTML:
```html
{markup}
```

Previous CSS:
```css
{styles}
```

Previous JavaScript:
```javascript
{logic}
```

Return the complete updated files, not a diff.
"""


def build_messages(prompt: str, previous: ArtifactTriple | None = None) -> list[dict[str, str]]:
    if previous is None:
        user = CREATE_TEMPLATE.format(prompt=prompt)
    else:
        user = REFINE_TEMPLATE.format(
            prompt=prompt,
            markup=previous.markup,
            styles=previous.styles,
            logic=previous.logic,
        )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]
