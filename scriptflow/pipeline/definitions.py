"""Built-in step catalogue.

One StepDefinition per ff_* wrapper script, mirroring what the node editor
offers. StepRegistry.discover() registers everything in STEP_DEFINITIONS.
"""

from scriptflow.pipeline.base import (
    ParameterKind,
    ParameterSpec,
    OutputSpec,
    OutputNaming,
    StepDefinition,
    CATEGORY_INPUT,
    CATEGORY_SIZE,
    CATEGORY_EFFECTS,
    CATEGORY_COMPOSITION,
    CATEGORY_FORMAT,
    CATEGORY_TIMING,
    CATEGORY_ASSEMBLY,
    CATEGORY_UTILITIES,
    CATEGORY_CUSTOM,
)

STRING = ParameterKind.STRING
NUMBER = ParameterKind.NUMBER
FILE = ParameterKind.FILE
SELECT = ParameterKind.SELECT
BOOLEAN = ParameterKind.BOOLEAN


def _input(description: str = "Input video file", **kwargs) -> ParameterSpec:
    return ParameterSpec("input", FILE, required=True, description=description, **kwargs)


def _grep() -> ParameterSpec:
    return ParameterSpec("grep", STRING, description="Filter files by pattern when input is a folder")


def _output(default: str) -> ParameterSpec:
    return ParameterSpec("output", STRING, default=default, description="Output filename")


def _step(step_id, name, category, description, *parameters, **kwargs) -> StepDefinition:
    return StepDefinition(
        step_id=step_id,
        name=name,
        category=category,
        description=description,
        parameters=tuple(parameters),
        **kwargs,
    )


# =============================================================================
# Input
# =============================================================================

INPUT = _step(
    "input", "Input", CATEGORY_INPUT,
    "Manual file input - enter a file path",
    ParameterSpec("filepath", STRING, required=True, description="Path to input file"),
    naming=OutputNaming.PASS_THROUGH,
    executable=False,
)

DOWNLOAD = _step(
    "ff_download", "Download", CATEGORY_INPUT,
    "Download a video from URL",
    ParameterSpec("input", STRING, required=True, description="URL to download video from"),
    ParameterSpec("urlsource", STRING, description="URL of a txt file with list of URLs to download"),
    ParameterSpec("strategy", STRING, default="1", description="Download strategy (number or ~number for random)"),
    _output("ff_download.mp4"),
    naming=OutputNaming.INDEXED_PREFIX,
)

# =============================================================================
# Size & Position
# =============================================================================

SCALE = _step(
    "ff_scale", "Scale", CATEGORY_SIZE,
    "Change the scale (physical dimensions) of the video",
    _input(),
    ParameterSpec("width", STRING, default="1920", description="Width in pixels (iw*.5, -1 keeps aspect)"),
    ParameterSpec("height", STRING, default="1080", description="Height in pixels (ih*.5, -1 keeps aspect)"),
    ParameterSpec("dar", STRING, description="Display Aspect Ratio"),
    ParameterSpec("sar", STRING, description="Sample Aspect Ratio"),
    _grep(),
    _output("ff_scale.mp4"),
)

CROP = _step(
    "ff_crop", "Crop", CATEGORY_SIZE,
    "Crop the video to specified dimensions",
    _input(),
    ParameterSpec("width", STRING, default="300", description="Width of crop area"),
    ParameterSpec("height", STRING, default="300", description="Height of crop area"),
    ParameterSpec("xpixels", STRING, default="(iw-ow)/2", description="X position (from left)", key="x"),
    ParameterSpec("ypixels", STRING, default="(ih-oh)/2", description="Y position (from top)", key="y"),
    _grep(),
    _output("ff_crop.mp4"),
)

PAD = _step(
    "ff_pad", "Pad", CATEGORY_SIZE,
    "Add padding around the video",
    _input(),
    ParameterSpec("width", STRING, default="0", description="Output width (0 uses input width)"),
    ParameterSpec("height", STRING, default="2*ih", description="Output height (0 uses input height)"),
    ParameterSpec("xpixels", STRING, default="(ow-iw)/2", description="X position of video in frame", key="x"),
    ParameterSpec("ypixels", STRING, default="(oh-ih)/2", description="Y position of video in frame", key="y"),
    ParameterSpec("colour", STRING, default="black", description="Padding colour"),
    _grep(),
    _output("ff_pad.mp4"),
)

ASPECT_RATIO = _step(
    "ff_aspect_ratio", "Aspect Ratio", CATEGORY_SIZE,
    "Change aspect ratio of video (alters container metadata DAR)",
    _input(),
    ParameterSpec("aspect", STRING, default="1:1", description="Target aspect ratio (X:Y format)"),
    _grep(),
    _output("ff_aspect_ratio.mp4"),
)

ROTATE = _step(
    "ff_rotate", "Rotate", CATEGORY_SIZE,
    "Rotate video by specified angle",
    _input(),
    ParameterSpec("rotation", NUMBER, default=90, description="Rotation angle in degrees"),
    _grep(),
    _output("ff_rotate.mp4"),
)

FLIP = _step(
    "ff_flip", "Flip", CATEGORY_SIZE,
    "Flip video horizontally and/or vertically",
    _input(),
    ParameterSpec("horizontal", BOOLEAN, default=False, description="Flip video horizontally"),
    ParameterSpec("vertical", BOOLEAN, default=False, description="Flip video vertically"),
    _grep(),
    _output("ff_flip.mp4"),
)

_ROTATE_OPTIONS = ("0", "1", "2", "3")

TO_LANDSCAPE = _step(
    "ff_to_landscape", "To Landscape", CATEGORY_SIZE,
    "Convert video to landscape orientation",
    _input(),
    ParameterSpec("rotate", SELECT, default="2", options=_ROTATE_OPTIONS,
                  description="Rotation method (0=90CCW+VFlip, 1=90CW, 2=90CCW, 3=90CW+VFlip)"),
    _grep(),
    _output("ff_to_landscape.mp4"),
)

TO_PORTRAIT = _step(
    "ff_to_portrait", "To Portrait", CATEGORY_SIZE,
    "Convert video to portrait orientation",
    _input(),
    ParameterSpec("rotate", SELECT, default="1", options=_ROTATE_OPTIONS,
                  description="Rotation method (0=90CCW+VFlip, 1=90CW, 2=90CCW, 3=90CW+VFlip)"),
    _grep(),
    _output("ff_to_portrait.mp4"),
)

# =============================================================================
# Effects
# =============================================================================

BLUR = _step(
    "ff_blur", "Blur", CATEGORY_EFFECTS,
    "Apply blur effect to video",
    _input(),
    ParameterSpec("strength", NUMBER, default=0.5, description="Blur strength (Gaussian sigma)"),
    ParameterSpec("steps", NUMBER, default=1, description="Number of times to apply blur"),
    _grep(),
    _output("ff_blur.mp4"),
)

SHARPEN = _step(
    "ff_sharpen", "Sharpen", CATEGORY_EFFECTS,
    "Apply sharpen effect to video",
    _input(),
    ParameterSpec("pixel", NUMBER, default=5, description="Matrix size (odd integer 3-23)"),
    ParameterSpec("sharpen", NUMBER, default=1.0, description="Sharpen strength (-2.0 to 5.0)"),
    _grep(),
    _output("ff_sharpen.mp4"),
)

UNSHARP = _step(
    "ff_unsharp", "Unsharp Mask", CATEGORY_EFFECTS,
    "Apply unsharp mask filter",
    _input(),
    ParameterSpec("luma_x", NUMBER, default=5, description="Luma matrix horizontal size"),
    ParameterSpec("luma_y", NUMBER, default=5, description="Luma matrix vertical size"),
    ParameterSpec("luma_amount", NUMBER, default=1.0, description="Luma effect strength"),
    ParameterSpec("chroma_x", NUMBER, default=5, description="Chroma matrix horizontal size"),
    ParameterSpec("chroma_y", NUMBER, default=5, description="Chroma matrix vertical size"),
    ParameterSpec("chroma_amount", NUMBER, default=0.5, description="Chroma effect strength"),
    ParameterSpec("alpha_x", NUMBER, default=5, description="Alpha matrix horizontal size"),
    ParameterSpec("alpha_y", NUMBER, default=5, description="Alpha matrix vertical size"),
    ParameterSpec("alpha_amount", NUMBER, default=0.5, description="Alpha effect strength"),
    _grep(),
    _output("ff_unsharp.mp4"),
)

COLOUR = _step(
    "ff_colour", "Color Adjust", CATEGORY_EFFECTS,
    "Adjust color properties of video",
    _input(),
    ParameterSpec("brightness", NUMBER, default=0, description="Brightness (-1.0 to 1.0)"),
    ParameterSpec("contrast", NUMBER, default=1, description="Contrast (-1000.0 to 1000.0)"),
    ParameterSpec("gamma", NUMBER, default=1, description="Gamma (0.1 to 10.0)"),
    ParameterSpec("saturation", NUMBER, default=1, description="Saturation (0.0 to 3.0)"),
    ParameterSpec("weight", NUMBER, description="Gamma weight"),
    _grep(),
    _output("ff_colour.mp4"),
)

LUT = _step(
    "ff_lut", "LUT", CATEGORY_EFFECTS,
    "Apply Look-Up Table color grading",
    _input(),
    ParameterSpec("lut", FILE, default="./lib/lut/Andromeda.cube", description="LUT file path (3DL/Cube)"),
    _grep(),
    _output("ff_lut.mp4"),
)

# =============================================================================
# Composition
# =============================================================================

OVERLAY = _step(
    "ff_overlay", "Overlay", CATEGORY_COMPOSITION,
    "Overlay one video on top of another",
    _input("Background video"),
    ParameterSpec("overlay", FILE, required=True, description="Overlay video/image"),
    ParameterSpec("start", NUMBER, description="Start time in seconds to show overlay"),
    ParameterSpec("end", NUMBER, description="End time in seconds to show overlay"),
    ParameterSpec("fit", BOOLEAN, default=False, description="Scale overlay to fit input video"),
    _output("ff_overlay.mp4"),
)

STACK = _step(
    "ff_stack", "Stack", CATEGORY_COMPOSITION,
    "Stack multiple videos together",
    _input("Input video files (folder or multiple files)",
           dynamic=True, dynamic_pattern="input%d", max_dynamic=8),
    ParameterSpec("vertical", BOOLEAN, default=False, description="Create vertical stack (2 inputs)"),
    ParameterSpec("horizontal", BOOLEAN, default=False, description="Create horizontal stack (2 inputs)"),
    ParameterSpec("grid", BOOLEAN, default=False, description="Create 2x2 grid (4 inputs)"),
    _output("ff_stack.mp4"),
)

WATERMARK = _step(
    "ff_watermark", "Watermark", CATEGORY_COMPOSITION,
    "Add watermark to video",
    _input(),
    ParameterSpec("watermark", FILE, required=True, description="Watermark image/video"),
    ParameterSpec("xpixels", STRING, default="10", description="X position (W-w-10)", key="x"),
    ParameterSpec("ypixels", STRING, default="10", description="Y position (H-h-10)", key="y"),
    ParameterSpec("scale", NUMBER, description="Scale factor for watermark"),
    ParameterSpec("alpha", NUMBER, description="Alpha transparency (0-1)"),
    ParameterSpec("start", NUMBER, description="Start time in seconds"),
    ParameterSpec("end", NUMBER, description="End time in seconds"),
    ParameterSpec("duration", NUMBER, description="Duration in seconds"),
    _output("ff_watermark.mp4"),
)

TEXT = _step(
    "ff_text", "Text", CATEGORY_COMPOSITION,
    "Add text overlay to video",
    _input(),
    ParameterSpec("text", STRING, description="Text to display (overrides textfile)"),
    ParameterSpec("textfile", FILE, description="File containing text to display"),
    ParameterSpec("font", STRING, default="/System/Library/Fonts/HelveticaNeue.ttc", description="Font file"),
    ParameterSpec("colour", STRING, default="white", description="Font colour (hex or name, @0.5 for alpha)"),
    ParameterSpec("size", NUMBER, default=24, description="Font size"),
    ParameterSpec("reduction", NUMBER, default=8, description="Font size reduction per line"),
    ParameterSpec("box", BOOLEAN, default=True, description="Show background box"),
    ParameterSpec("boxcolour", STRING, default="black", description="Background box colour"),
    ParameterSpec("boxborder", NUMBER, default=5, description="Background box border width"),
    ParameterSpec("xpixels", STRING, default="(w-tw)/2", description="X position (from left)", key="x"),
    ParameterSpec("ypixels", STRING, default="(h-th)/2", description="Y position (from top)", key="y"),
    _output("ff_text.mp4"),
)

SUBTITLES = _step(
    "ff_subtitles", "Subtitles", CATEGORY_COMPOSITION,
    "Hard embed subtitles on video",
    _input(),
    ParameterSpec("subtitles", FILE, required=True, description="Subtitle SRT file"),
    ParameterSpec("styles", STRING, description="Forced style for subtitles"),
    ParameterSpec("removedupes", BOOLEAN, default=False, description="Remove duplicate lines in subtitles"),
    ParameterSpec("dynamictext", BOOLEAN, default=False, description="Split subtitles into dynamic words"),
    _output("ff_subtitles.mp4"),
)

AUDIO = _step(
    "ff_audio", "Audio Overlay", CATEGORY_COMPOSITION,
    "Overlay audio track on video",
    _input(),
    ParameterSpec("audio", FILE, description="Audio file to overlay"),
    ParameterSpec("remove", BOOLEAN, default=False, description="Remove existing audio instead"),
    ParameterSpec("start", NUMBER, default=0, description="Start time in seconds"),
    ParameterSpec("speed", NUMBER, default=1.0, description="Audio playback speed"),
    ParameterSpec("shortest", BOOLEAN, default=False, description="End when shortest input ends"),
    _output("ff_audio.mp4"),
)

# =============================================================================
# Format
# =============================================================================

CONVERT = _step(
    "ff_convert", "Convert", CATEGORY_FORMAT,
    "Convert video format with optimal codec settings",
    _input(),
    ParameterSpec("format", SELECT, default="mp4", options=("mp4", "mov", "avi", "webm", "mkv"),
                  description="Output format (mp4 defaults to h264/aac)"),
    _grep(),
    _output("ff_convert.mp4"),
)

TRANSCODE = _step(
    "ff_transcode", "Transcode", CATEGORY_FORMAT,
    "Transcode video with specific codec settings",
    _input(dynamic=True, dynamic_pattern="input%d", max_dynamic=10),
    ParameterSpec("video", STRING, default="libx264", description="Video codec"),
    ParameterSpec("audio", STRING, default="aac", description="Audio codec"),
    ParameterSpec("fps", NUMBER, default=30, description="Frames per second"),
    ParameterSpec("sar", STRING, description="Sample Aspect Ratio"),
    ParameterSpec("width", NUMBER, default=1920, description="Video width"),
    ParameterSpec("height", NUMBER, description="Video height"),
    _grep(),
    _output("ff_transcode.mp4"),
)

SOCIAL_MEDIA = _step(
    "ff_social_media", "Social Media", CATEGORY_FORMAT,
    "Convert ready for Social Media (pix_fmt=yuv420p)",
    _input(),
    ParameterSpec("instagram", BOOLEAN, default=False, description="Convert ready for Instagram"),
    _output("ff_social_media.mp4"),
)

# =============================================================================
# Timing
# =============================================================================

CUT = _step(
    "ff_cut", "Cut", CATEGORY_TIMING,
    "Cut a section from video",
    _input(),
    ParameterSpec("start", STRING, default="00:00:00", description="Start time (HH:MM:SS)"),
    ParameterSpec("end", STRING, default="00:00:10", description="End time (HH:MM:SS)"),
    _grep(),
    _output("ff_cut.mp4"),
)

FPS = _step(
    "ff_fps", "FPS", CATEGORY_TIMING,
    "Change frame rate of video without changing length",
    _input(),
    ParameterSpec("fps", NUMBER, default=30, description="Target frame rate"),
    _grep(),
    _output("ff_fps.mp4"),
)

MIDDLE = _step(
    "ff_middle", "Middle", CATEGORY_TIMING,
    "Trim video from start and end by specified seconds",
    _input(),
    ParameterSpec("trim", NUMBER, default=1, description="Seconds to remove from start and end"),
    _grep(),
    _output("ff_middle.mp4"),
)

GROUPTIME = _step(
    "ff_grouptime", "Group Time", CATEGORY_TIMING,
    "Trim input videos by percentage to get correct duration",
    _input("Input video file/folder", dynamic=True, dynamic_pattern="input%d", max_dynamic=10),
    ParameterSpec("duration", NUMBER, description="Target duration"),
    ParameterSpec("arrangement", SELECT, default="standard",
                  options=("standard", "reversed", "skip1", "skip1reversed"),
                  description="Order to read input files"),
    _grep(),
    _output("ff_grouptime.mp4"),
)

# =============================================================================
# Assembly
# =============================================================================

CONCAT = _step(
    "ff_concat", "Concatenate", CATEGORY_ASSEMBLY,
    "Concatenate multiple videos",
    ParameterSpec("input1", FILE, required=True, description="First video"),
    ParameterSpec("input2", FILE, required=True, description="Second video"),
    ParameterSpec("input3", FILE, description="Third video (optional)",
                  dynamic=True, dynamic_pattern="input%d", max_dynamic=10),
    _output("ff_concat.mp4"),
)

APPEND = _step(
    "ff_append", "Append", CATEGORY_ASSEMBLY,
    "Append two files together while re-encoding to same codec",
    ParameterSpec("first", FILE, required=True, description="First input file"),
    ParameterSpec("second", FILE, required=True, description="Second input file"),
    _output("ff_append.mp4"),
)

TRANSITION = _step(
    "ff_transition", "Transition", CATEGORY_ASSEMBLY,
    "Concat videos with transition effects between each",
    _input("Input video files/folder", dynamic=True, dynamic_pattern="input%d", max_dynamic=10),
    ParameterSpec("duration", NUMBER, description="Transition duration"),
    ParameterSpec("sort", STRING, description="Sort flags for file input order"),
    ParameterSpec("effects", STRING, description="CSV string of effects to use between clips"),
    _grep(),
    _output("ff_transition.mp4"),
)

# =============================================================================
# Utilities
# =============================================================================

IMAGE = _step(
    "ff_image", "Image to Video", CATEGORY_UTILITIES,
    "Convert image to video",
    _input("Input image file"),
    ParameterSpec("duration", NUMBER, default=5, description="Duration in seconds"),
    _output("ff_image.mp4"),
)

KENBURNS = _step(
    "ff_kenburns", "Ken Burns", CATEGORY_UTILITIES,
    "Generate video from image with ken-burns effect",
    _input("Input image file or folder"),
    ParameterSpec("target", SELECT, options=("TopLeft", "TopRight", "BottomLeft", "BottomRight", "Random"),
                  description="Target of the zoom"),
    ParameterSpec("fps", NUMBER, description="Frames per second"),
    ParameterSpec("width", NUMBER, description="Output width"),
    ParameterSpec("height", NUMBER, description="Output height"),
    ParameterSpec("duration", NUMBER, description="Duration in seconds"),
    ParameterSpec("speed", NUMBER, description="Zoom speed"),
    ParameterSpec("bitrate", STRING, default="5000k", description="Output bitrate (5000k, 2M)"),
    _grep(),
    _output("ff_kenburns.mp4"),
)

THUMBNAIL = _step(
    "ff_thumbnail", "Thumbnail", CATEGORY_UTILITIES,
    "Create thumbnails representative of the video",
    _input(),
    ParameterSpec("count", NUMBER, description="Number of thumbnails to generate"),
    ParameterSpec("sample", STRING, description="Sample method for thumbnail generation"),
    _output("thumbnail.jpg"),
    outputs=(OutputSpec("image", "image"),),
)

PROXY = _step(
    "ff_proxy", "Proxy", CATEGORY_UTILITIES,
    "Generate low-resolution proxy by scaling video",
    _input("Input video file/folder"),
    ParameterSpec("scalex", NUMBER, description="X scale factor"),
    ParameterSpec("scaley", NUMBER, description="Y scale factor"),
    ParameterSpec("recursive", BOOLEAN, default=False, description="Process folder recursively"),
    ParameterSpec("fps", NUMBER, description="Frames per second"),
    ParameterSpec("crf", NUMBER, default=25, description="Constant Rate Factor (0-51)"),
    ParameterSpec("codec", STRING, default="libx264", description="Video codec"),
    _grep(),
    _output("ff_proxy.mp4"),
)

SH_RUNNER = _step(
    "ff_sh_runner", "Shell Runner", CATEGORY_UTILITIES,
    "Run any shell script (yt-dlp, rclone, ...) as a step",
    ParameterSpec("script", FILE, required=True, description="Script to run"),
    ParameterSpec("params", STRING, description="Arguments passed to the script"),
    ParameterSpec("output", STRING, description="File the script produces"),
)

# =============================================================================
# Custom
# =============================================================================

CUSTOM = _step(
    "ff_custom", "Custom FFMPEG", CATEGORY_CUSTOM,
    "Custom FFMPEG processing with any parameters",
    _input(),
    ParameterSpec("params", STRING, required=True, description="FFMPEG parameters string"),
    _grep(),
    _output("ff_custom.mp4"),
)


STEP_DEFINITIONS = (
    INPUT,
    DOWNLOAD,
    SCALE,
    CROP,
    PAD,
    ASPECT_RATIO,
    ROTATE,
    FLIP,
    TO_LANDSCAPE,
    TO_PORTRAIT,
    BLUR,
    SHARPEN,
    UNSHARP,
    COLOUR,
    LUT,
    OVERLAY,
    STACK,
    WATERMARK,
    TEXT,
    SUBTITLES,
    AUDIO,
    CONVERT,
    TRANSCODE,
    SOCIAL_MEDIA,
    CUT,
    FPS,
    MIDDLE,
    GROUPTIME,
    CONCAT,
    APPEND,
    TRANSITION,
    IMAGE,
    KENBURNS,
    THUMBNAIL,
    PROXY,
    SH_RUNNER,
    CUSTOM,
)
