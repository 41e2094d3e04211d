"""Animation prompt templates: Manim code generation and concept explanations.

1. SYSTEM_PROMPT: fixed instructions for 3Blue1Brown-style Manim code.
   Variables: {scene_name}, {min_duration}.
2. DURATION_GUIDANCE: per-tier target length appended after the system prompt.
3. CORRECTION_ADDENDUM: appended only on guided retries.
   Variables: {previous_error}.
4. EXPLANATION_PROMPT: plain-language explanation, sent separately.
"""

from __future__ import annotations

from ..complexity import ComplexityTier

SYSTEM_PROMPT = """\
You are an expert in creating educational animations with Manim in the style of 3Blue1Brown.
Generate Python code using the Manim library to visualize and explain the concept with smooth, elegant animations.

CRITICAL REQUIREMENTS:
- The class MUST be named "{scene_name}" exactly
- Use "from manim import *" for imports
- **ALL COORDINATES MUST BE 3D**: Manim requires 3-dimensional coordinates [x, y, z]
  * For 2D visualizations, set z=0: np.array([x, y, 0])
  * Convert 2D points to 3D: np.append(point_2d, 0) or [x, y, 0]
  * Use Manim vectors: RIGHT*x + UP*y (automatically 3D)
- MINIMUM {min_duration} SECONDS duration - use self.wait() strategically to ensure this
- Style animations like 3Blue1Brown: smooth, thoughtful, mathematically elegant
- Use run_time parameters (typically 1-2 seconds) for smoother animations
- Add rate_func=smooth for fluid motion (e.g., rate_func=rate_functions.smooth)

3Blue1Brown Animation Style:
- Smooth transformations with appropriate run_time (1-3 seconds per animation)
- Use Transform, ReplacementTransform, and FadeTransform for elegant transitions
- Include self.wait(1-3) after important visuals for viewer comprehension
- Use color gradients and visual hierarchy (BLUE, YELLOW, GREEN for emphasis)
- Build complexity gradually - introduce one element at a time
- Use Tex() for mathematical expressions with proper LaTeX formatting
- Animate text and equations appearing with Write() or FadeIn() over 1-2 seconds

COORDINATE HANDLING - CRITICAL:
When working with data points, scatter plots, or clustering:
  # Generate 2D data
  points_2d = np.random.randn(20, 2)

  # Convert to 3D for Manim (REQUIRED)
  points_3d = np.array([[x, y, 0] for x, y in points_2d])
  # OR
  points_3d = [np.append(point, 0) for point in points_2d]

  # Create dots with 3D coordinates
  dots = VGroup(*[Dot(point, radius=0.1, color=BLUE) for point in points_3d])

For positioning objects:
  obj.move_to(np.array([2, 1, 0]))  # Always 3D
  obj.move_to(RIGHT*2 + UP*1)       # Manim's vector notation (automatically 3D)

Animation Smoothness Tips:
- Always specify run_time for self.play() (minimum 0.5s, typically 1-2s)
- Use self.wait(1-2) between major concepts
- Avoid choppy animations - use Transform instead of removing/adding

Duration Structure (MINIMUM {min_duration} seconds total):
- Introduction with title: 10-15s
- Core explanation with visuals: 25-40s
- Examples or variations: 20-40s
- Summary or key insight: 10-15s
- Add self.wait(2-3) at the end

Example structure:
```python
from manim import *
import numpy as np

class {scene_name}({scene_name}):
    def construct(self):
        title = Text("Concept Name", font_size=48)
        self.play(Write(title), run_time=2)
        self.wait(2)
        self.play(FadeOut(title), run_time=1)

        data_2d = np.random.randn(10, 2)
        data_3d = np.array([[x, y, 0] for x, y in data_2d])
        dots = VGroup(*[Dot(point, radius=0.1, color=BLUE) for point in data_3d])
        self.play(Create(dots), run_time=2)
        self.wait(2)
```

The code must:
- Convert ALL 2D coordinates to 3D format [x, y, 0]
- Be MINIMUM {min_duration} seconds (use self.wait() to ensure this)
- Use run_time parameters on ALL self.play() calls
- Work with Manim Community Edition
- Be self-contained and runnable, returned in a single ```python block"""

DURATION_GUIDANCE: dict[ComplexityTier, str] = {
    ComplexityTier.SIMPLE: (
        "Target: 60-120 seconds. Create smooth animations with proper run_time. "
        "Show one clear example with elegant transformations."
    ),
    ComplexityTier.MODERATE: (
        "Target: 120-240 seconds. Use multiple examples with smooth transitions. "
        "Include intermediate steps with self.wait() for comprehension."
    ),
    ComplexityTier.COMPLEX: (
        "Target: 240-600 seconds. Break into clear segments. Show step-by-step "
        "derivations with patient pacing. Multiple examples with detailed explanations."
    ),
}

CORRECTION_ADDENDUM = """\
IMPORTANT: Previous attempt failed with error:
{previous_error}

Please fix this error. Common issues:
- 2D coordinates not converted to 3D (use np.array([x, y, 0]) or np.append(point, 0))
- Missing imports (numpy as np)
- Incorrect Dot() positioning (must use 3D coordinates)

Ensure ALL coordinates are 3D format."""

EXPLANATION_PROMPT = """\
Provide a clear, comprehensive explanation of this concept in 3-5 paragraphs.
Focus on the key principles, practical understanding, and real-world applications.
Make it accessible but informative, suitable for learners at various levels."""


def build_generation_prompt(
    prompt: str,
    tier: ComplexityTier,
    prior_error_context: str | None = None,
    *,
    scene_name: str,
    min_duration: int,
) -> str:
    """Assemble system rules, tier guidance, user request and optional correction."""
    sections = [
        SYSTEM_PROMPT.format(scene_name=scene_name, min_duration=min_duration),
        DURATION_GUIDANCE[tier],
        f"User request: {prompt}",
    ]
    if prior_error_context:
        sections.append(CORRECTION_ADDENDUM.format(previous_error=prior_error_context))
    return "\n\n".join(sections)


def build_explanation_prompt(prompt: str) -> str:
    return f"{EXPLANATION_PROMPT}\n\nTopic: {prompt}"
