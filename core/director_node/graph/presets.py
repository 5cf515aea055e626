"""
Preset tables for config-injector nodes and video providers.

directorStyle, cinematicSetup and cameraMovement nodes take no inputs: they
turn a configured key (a director name, a camera body, a movement) into a
canned prompt fragment. videoGen validates its provider/resolution/duration
choice against VIDEO_PROVIDER_CONFIGS.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Preset:
    label: str
    prompt: str


# === DIRECTOR STYLES ===

DEFAULT_DIRECTOR = "nolan"

DIRECTOR_STYLES: dict[str, str] = {
    "nolan": (
        "Grounded cinematic realism with heavy physical presence. Natural, muted color "
        "palette with strong contrast and deep blacks. Dense atmosphere, weighty textures, "
        "believable materials. Dramatic light separation, controlled highlights, deep "
        "shadows. Serious, restrained tone, monumental but realistic image. No "
        "stylization, no exaggeration, no glossy look."
    ),
    "tarantino": (
        "Bold, stylized realism with strong visual personality. High contrast image with "
        "rich, saturated colors. Graphic composition, striking faces, expressive details. "
        "Provocative, playful tension embedded in the image. Deliberate staging, iconic "
        "visual attitude."
    ),
    "spielberg": (
        "Emotion-first cinematic image with clear visual readability. Warm, natural "
        "lighting enhancing human expression. Balanced composition, soft contrast, "
        "accessible color palette. Lively, immersive atmosphere with emotional clarity. "
        "Sense of wonder and humanity."
    ),
    "besson": (
        "Graphic, high-impact cinematic image. Strong contrast with bold or neon color "
        "accents. Clean shapes, sharp silhouettes, sleek visual identity. Stylish, modern "
        "atmosphere with strong attitude. Iconic, fashion-forward presence."
    ),
    "kubrick": (
        "Cold, controlled cinematic image with strict visual precision. Perfect symmetry "
        "and geometric composition. Neutral, clinical color palette with minimal warmth. "
        "Even, precise lighting, emotionally detached atmosphere. Calm, unsettling "
        "stillness."
    ),
    "anderson": (
        "Highly stylized cinematic image with meticulous symmetry. Limited, "
        "pastel-oriented color palette. Flat, even lighting with minimal shadow depth. "
        "Illustrative, storybook-like visual order. Whimsical yet controlled atmosphere."
    ),
    "cameron": (
        "High-fidelity cinematic image with epic visual presence. Clean, sharp textures "
        "and strong depth separation. Rich but controlled colors, crisp contrast. "
        "Powerful, immersive atmosphere with technical precision. Grand, impactful image "
        "quality."
    ),
    "burton": (
        "Dark, gothic cinematic image with fairytale undertones. Exaggerated forms, "
        "dramatic contrast, deep shadows. Muted palette with selective highlights. Eerie, "
        "whimsical atmosphere with melancholic beauty. Storybook darkness."
    ),
    "scorsese": (
        "Raw, immersive cinematic image with gritty realism. Textured lighting, strong "
        "contrast, natural imperfections. Earthy, slightly desaturated color palette. "
        "Intense emotional presence, lived-in atmosphere. Visceral, confrontational image "
        "quality."
    ),
}


def director_style_prompt(director: str | None) -> str:
    """Style text for a director key; unknown keys fall back to the default director."""
    return DIRECTOR_STYLES.get(director or DEFAULT_DIRECTOR, DIRECTOR_STYLES[DEFAULT_DIRECTOR])


# === CINEMATIC SETUP ===

CAMERAS: dict[str, Preset] = {
    "red_vraptor": Preset(
        "Red V-Raptor",
        "RED V-Raptor large-format digital sensor, very high micro-contrast and crisp edge "
        "definition, punchy midtones with modern digital color separation, clean sensor "
        "texture with minimal organic noise, NO filmic halation, NO soft highlight bloom, "
        "priority on sharp, modern, high-impact digital clarity over organic softness.",
    ),
    "sony_venice": Preset(
        "Sony Venice",
        "Sony VENICE full-frame digital sensor, moderate micro-contrast with smooth tonal "
        "transitions, neutral-to-warm cinematic color science, refined shadow detail with "
        "controlled chroma noise, NO aggressive edge sharpening, NO punchy digital contrast "
        "spikes, priority on smooth tonal continuity and natural color over perceived "
        "sharpness.",
    ),
    "imax": Preset(
        "IMAX Film Camera",
        "IMAX 70mm film capture, extremely high texture density with organic film grain, "
        "deep contrast with natural highlight halation, analog color depth with physical "
        "film response, NO digital cleanliness, NO sterile shadow rendering, priority on "
        "epic scale, analog texture, and physical realism over digital precision.",
    ),
    "arri_alexa": Preset(
        "Arri Alexa",
        "ARRI ALEXA digital sensor, low micro-contrast with extremely soft highlight "
        "roll-off, natural skin-tone priority with rich midtones, subtle organic sensor "
        "texture without digital harshness, NO high micro-contrast rendering, NO modern "
        "digital edge sharpness, priority on highlight roll-off and skin realism over "
        "detail acuity.",
    ),
    "arriflex_16sr": Preset(
        "Arriflex 16SR",
        "Arriflex 16SR 16mm film capture, pronounced organic grain with lower resolving "
        "power, punchy contrast and imperfect texture, visible analog artifacts and edge "
        "softness, NO clean digital surfaces, NO modern sharpness or noise reduction, "
        "priority on raw analog texture and documentary realism over image purity.",
    ),
    "panavision_dxl2": Preset(
        "Panavision Millennium DXL2",
        "Panavision DXL2 large-format digital sensor, balanced micro-contrast with premium "
        "tonal depth, rich color separation with cinematic saturation control, clean but "
        "high-end cinema texture, NO documentary flatness, NO aggressive digital sharpness, "
        "priority on polished Hollywood cinematic balance over raw realism.",
    ),
}

LENSES: dict[str, Preset] = {
    "cooke_s4": Preset(
        "Cooke S4",
        "Cooke S4 prime lenses, low micro-contrast with warm color response, soft highlight "
        "transitions and gentle edge falloff, creamy circular bokeh with smooth focus "
        "roll-off, NO crisp edge acuity, NO high micro-contrast rendering, priority on skin "
        "texture and emotional softness over optical sharpness.",
    ),
    "zeiss_ultra": Preset(
        "Zeiss Ultra Prime",
        "Zeiss Ultra Prime lenses, high micro-contrast with precise edge definition, "
        "neutral color rendering and geometric accuracy, clean separation and firm focus "
        "transitions, NO warm color bias, NO soft highlight bloom, priority on clarity, "
        "structure, and optical precision over softness.",
    ),
    "panavision_c": Preset(
        "Panavision C-Series",
        "Panavision C-Series anamorphic lenses, oval bokeh with horizontal stretch, "
        "pronounced horizontal flare streaks, edge softness and classic anamorphic "
        "distortion, NO spherical bokeh, NO modern clean rendering, priority on vintage "
        "anamorphic character over optical correctness.",
    ),
    "hawk_vlite": Preset(
        "Hawk V-Lite",
        "Hawk V-Lite anamorphic lenses, controlled oval bokeh with cleaner geometry, subtle "
        "horizontal flares with restrained distortion, balanced anamorphic character "
        "without heavy artifacts, NO exaggerated vintage distortion, NO spherical depth "
        "rendering, priority on modern anamorphic control over raw vintage character.",
    ),
    "arri_signature": Preset(
        "Arri Signature Prime",
        "ARRI Signature Prime lenses, modern clean optics with natural bokeh, high "
        "resolution with smooth edge consistency, minimal aberrations and neutral color "
        "response, NO vintage softness, NO optical distortion or flare dominance, priority "
        "on realism and optical neutrality over character.",
    ),
    "helios": Preset(
        "Helios",
        "Helios vintage lenses, swirly bokeh with strong background rotation, lower "
        "contrast and warm rendering, imperfect edge sharpness and visible aberrations, NO "
        "clean modern optics, NO neutral background blur, priority on expressive background "
        "motion over optical accuracy.",
    ),
    "petzval": Preset(
        "Petzval",
        "Petzval optics, extreme field curvature with sharp center and dramatic edge "
        "falloff, strong swirly bokeh and vintage glow, romantic aberrations and optical "
        "imperfection, NO uniform sharpness across frame, NO modern contrast control, "
        "priority on center-focus drama and vintage character over realism.",
    ),
    "laowa_macro": Preset(
        "Laowa Macro",
        "Laowa macro lenses, extreme close-focus capability with high texture resolution, "
        "tight depth plane and rapid focus falloff, minimal distortion with "
        "inspection-level detail, NO dreamy softness, NO artistic bokeh dominance, priority "
        "on surface detail and micro-texture over cinematic blur.",
    ),
    "lensbaby": Preset(
        "Lensbaby",
        "Lensbaby optics, selective focus with pronounced blur gradients, intentional "
        "optical aberrations and field curvature, dreamlike softness with creative "
        "distortion, NO optical correctness, NO clean edge definition, priority on artistic "
        "expression over technical accuracy.",
    ),
    "canon_k35": Preset(
        "Canon K-35",
        "Canon K-35 vintage cinema prime lenses, low-to-moderate micro-contrast with warm "
        "color bias, soft highlight bloom and gentle halation on bright areas, slightly "
        "imperfect edge sharpness with organic falloff, NO modern clinical sharpness, NO "
        "neutral or cold color rendering, priority on vintage softness, glow, and nostalgic "
        "cinematic character over precision.",
    ),
}

FOCAL_LENGTHS: dict[str, Preset] = {
    "8mm": Preset(
        "8mm (Ultra Wide)",
        "8mm ultra-wide focal length, extreme perspective expansion with exaggerated "
        "foreground scale, strong spatial distortion and dynamic depth exaggeration, "
        "background pushed far away with dramatic environment dominance, NO natural facial "
        "proportions, NO subtle perspective rendering, priority on immersive spatial impact "
        "over realism or intimacy.",
    ),
    "14mm": Preset(
        "14mm (Wide)",
        "14mm wide-angle focal length, expanded spatial depth with controlled perspective "
        "stretch, foreground emphasis with energetic environment presence, clear "
        "subject-to-background distance without extreme distortion, NO telephoto "
        "compression, NO intimate portrait geometry, priority on environmental storytelling "
        "over subject isolation.",
    ),
    "35mm": Preset(
        "35mm (Balanced)",
        "35mm focal length, balanced spatial geometry with natural perspective, realistic "
        "subject-to-background relationship, moderate depth separation without visual "
        "distortion, NO exaggerated compression, NO wide-angle spatial stretch, priority on "
        "narrative realism and versatility over stylization.",
    ),
    "50mm": Preset(
        "50mm (Intimate)",
        "50mm focal length, mild background compression with tighter spatial "
        "relationships, natural portrait proportions and calmer geometry, subject emphasis "
        "with reduced environmental dominance, NO wide-angle expansion, NO strong telephoto "
        "flattening, priority on intimacy and subject presence over spatial drama.",
    ),
}

APERTURES: dict[str, Preset] = {
    "f1_4": Preset(
        "f/1.4 (Artistic)",
        "Aperture f/1.4, extremely shallow depth of field with rapid focus falloff, soft "
        "focus transitions with pronounced background separation, highlight bloom and "
        "potential glow on specular highlights, NO deep scene readability, NO flat focus "
        "planes, priority on subject isolation, glow, and expressive depth over clarity.",
    ),
    "f4": Preset(
        "f/4 (Balanced)",
        "Aperture f/4, controlled depth of field with readable environment, smooth and "
        "natural focus transitions, clean highlights without excessive bloom, NO extreme "
        "blur dominance, NO clinical full-depth sharpness, priority on cinematic balance "
        "between subject separation and scene clarity.",
    ),
    "f11": Preset(
        "f/11 (Clinical)",
        "Aperture f/11, deep depth of field with extended scene sharpness, minimal "
        "background blur and strong overall readability, high highlight control with "
        "minimal bloom, NO shallow depth isolation, NO artistic focus falloff, priority on "
        "detail retention and scene clarity over cinematic separation.",
    ),
}

QUALITY_PROMPTS: dict[str, str] = {
    "1K": (
        "1K quality render, moderate detail density with simplified micro-texture, clean "
        "readable surfaces with reduced fine grain, higher tolerance to minor "
        "simplification artifacts, NO ultra-fine texture expectation, NO film-grain "
        "dominance, priority on speed, readability, and structural validation over realism."
    ),
    "2K": (
        "2K quality render, high detail fidelity with believable surface texture, balanced "
        "sharpness and organic noise/grain presence, controlled artifact suppression with "
        "cinematic realism, NO low-detail plastic surfaces, NO over-sharpened digital "
        "edges, priority on production-ready realism and visual credibility."
    ),
    "4K": (
        "4K quality render, maximum perceived detail density and micro-texture "
        "preservation, fine surface detail with controlled natural grain, minimal artifact "
        "tolerance and high realism expectation, NO texture smoothing, NO resolution "
        "downscaling behavior, priority on visual fidelity and texture integrity over "
        "performance."
    ),
}

ASPECT_RATIO_PROMPTS: dict[str, str] = {
    "1:1": (
        "1:1 square framing, centralized composition with strong symmetry, graphic balance "
        "and iconic visual impact, NO lateral storytelling, NO cinematic blocking, priority "
        "on bold subject presence and visual punch over narrative flow."
    ),
    "4:5": (
        "4:5 vertical framing, editorial portrait composition with controlled headroom, "
        "subject-forward layout optimized for mobile reading, NO wide cinematic staging, NO "
        "horizontal narrative flow, priority on subject readability and elegance over "
        "spatial storytelling."
    ),
    "5:4": (
        "5:4 framing, classic photographic composition with balanced negative space, "
        "medium-format still image language, NO dynamic cinematic motion cues, NO "
        "vertical-first composition, priority on photographic stability and elegance over "
        "narrative movement."
    ),
    "9:16": (
        "9:16 vertical framing, top-to-bottom visual reading with strong subject stacking, "
        "mobile-first composition optimized for reels and stories, NO cinematic widescreen "
        "blocking, NO lateral negative space dominance, priority on vertical impact and "
        "immediacy over cinematic depth."
    ),
    "16:9": (
        "16:9 widescreen framing, balanced horizontal composition with natural screen "
        "grammar, left-to-right narrative blocking, NO ultra-wide cinematic staging, NO "
        "vertical-first dominance, priority on clarity and mainstream cinematic readability."
    ),
    "21:9": (
        "21:9 ultra-wide cinematic framing, panoramic horizontal staging with strong "
        "negative space, theatrical composition and feature-film language, NO centered "
        "social framing, NO vertical composition logic, priority on cinematic scale and "
        "dramatic staging over immediacy."
    ),
}

CINEMATIC_DEFAULTS = {
    "camera": "red_vraptor",
    "lens": "cooke_s4",
    "focal": "35mm",
    "aperture": "f4",
    "quality": "2K",
    "aspect_ratio": "21:9",
}


def build_cinematic_prompt(
    camera: str | None = None,
    lens: str | None = None,
    focal: str | None = None,
    aperture: str | None = None,
    quality: str | None = None,
    aspect_ratio: str | None = None,
) -> str:
    """
    Join the prompt fragments for a cinematic setup.

    Missing values take CINEMATIC_DEFAULTS; unknown keys contribute nothing.
    """
    camera = camera or CINEMATIC_DEFAULTS["camera"]
    lens = lens or CINEMATIC_DEFAULTS["lens"]
    focal = focal or CINEMATIC_DEFAULTS["focal"]
    aperture = aperture or CINEMATIC_DEFAULTS["aperture"]
    quality = quality or CINEMATIC_DEFAULTS["quality"]
    aspect_ratio = aspect_ratio or CINEMATIC_DEFAULTS["aspect_ratio"]

    parts = [
        CAMERAS[camera].prompt if camera in CAMERAS else "",
        LENSES[lens].prompt if lens in LENSES else "",
        FOCAL_LENGTHS[focal].prompt if focal in FOCAL_LENGTHS else "",
        APERTURES[aperture].prompt if aperture in APERTURES else "",
        QUALITY_PROMPTS.get(quality, ""),
        ASPECT_RATIO_PROMPTS.get(aspect_ratio, ""),
    ]
    return " ".join(parts).strip()


# === CAMERA MOVEMENT ===

DEFAULT_MOVEMENT = "static"

MOVEMENT_PROMPTS: dict[str, str] = {
    "static": "Static shot, no camera movement, locked frame, stable composition",
    "handheld": (
        "Handheld camera movement, subtle organic micro-movements with natural human "
        "instability, irregular motion pattern, controlled cinematic shake, no mechanical "
        "stabilization"
    ),
    "zoom_in": (
        "Optical zoom-in movement, lens-based focal length change without camera "
        "translation, smooth constant zoom speed, background compression toward subject, "
        "no parallax, no physical camera movement"
    ),
    "zoom_out": (
        "Optical zoom-out movement, lens-based focal length expansion without camera "
        "translation, steady zoom speed, background expansion away from subject, no "
        "parallax, no physical camera movement"
    ),
    "camera_follows": (
        "Tracking shot following subject movement, smooth camera motion maintaining "
        "consistent framing distance, dynamic parallax"
    ),
    "pan_left": (
        "Horizontal pan left, camera rotation on vertical axis from a fixed position, "
        "constant angular speed, stable horizon, no camera translation, no tilt"
    ),
    "pan_right": (
        "Horizontal pan right, camera rotation on vertical axis from a fixed position, "
        "constant angular speed, stable horizon, no camera translation, no tilt"
    ),
    "tilt_up": (
        "Vertical tilt up, camera rotation on horizontal axis, controlled upward angular "
        "motion revealing vertical scale, no pan, no camera translation"
    ),
    "tilt_down": (
        "Vertical tilt down, camera rotation on horizontal axis, controlled downward "
        "angular motion, stable framing, no pan, no camera translation"
    ),
    "orbit_around": (
        "Orbiting camera movement, circular camera path around the subject at constant "
        "radius, continuous parallax shift, stabilized motion, subject maintained near "
        "center frame"
    ),
    "dolly_in": (
        "Forward dolly movement, physical camera translation toward the subject on a "
        "straight axis, visible parallax between foreground and background, smooth "
        "cinematic motion, no optical zoom"
    ),
    "dolly_out": (
        "Backward dolly movement, physical camera translation away from the subject, "
        "increasing spatial separation and parallax, smooth controlled retreat, no optical "
        "zoom"
    ),
    "jib_up": (
        "Vertical crane up movement, physical camera elevation upward on a vertical axis, "
        "smooth mechanical lift, changing perspective and scale, no tilt, no zoom"
    ),
    "jib_down": (
        "Vertical crane down movement, physical camera descent on a vertical axis, smooth "
        "controlled lowering, perspective compression, no tilt, no zoom"
    ),
    "drone_shot": (
        "Aerial drone shot, elevated camera perspective with smooth mechanical flight "
        "movement, revealing spatial context and scale"
    ),
    "360_roll": (
        "360-degree roll movement, complete camera rotation on longitudinal axis, "
        "continuous circular motion, disorienting cinematic effect"
    ),
}


def movement_prompt(movement: str | None) -> str:
    """Movement text for a key; unknown keys get the static shot text."""
    return MOVEMENT_PROMPTS.get(movement or DEFAULT_MOVEMENT, MOVEMENT_PROMPTS[DEFAULT_MOVEMENT])


# === VIDEO PROVIDERS ===


@dataclass(frozen=True)
class ResolutionConfig:
    resolution: str
    durations: tuple[int, ...]


@dataclass(frozen=True)
class VideoProviderConfig:
    id: str
    label: str
    resolutions: tuple[ResolutionConfig, ...]
    default_resolution: str
    default_duration: int

    def durations_for(self, resolution: str) -> tuple[int, ...]:
        for res in self.resolutions:
            if res.resolution == resolution:
                return res.durations
        return ()


VIDEO_PROVIDER_CONFIGS: dict[str, VideoProviderConfig] = {
    "minimax": VideoProviderConfig(
        id="minimax",
        label="MiniMax-Hailuo-2.3",
        resolutions=(
            ResolutionConfig("768p", (6, 10)),
            ResolutionConfig("1080p", (6,)),
        ),
        default_resolution="768p",
        default_duration=6,
    ),
    "veo": VideoProviderConfig(
        id="veo",
        label="Veo",
        resolutions=(ResolutionConfig("1080p", (5, 8)),),
        default_resolution="1080p",
        default_duration=5,
    ),
}


def is_valid_combination(provider: str, resolution: str, duration: int) -> bool:
    config = VIDEO_PROVIDER_CONFIGS.get(provider)
    if config is None:
        return False
    return duration in config.durations_for(resolution)
