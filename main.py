#!/usr/bin/env python3
import argparse
import logging

import cv2

from fretcoach.config.guitar_config import FINGER_NAMES, HAND_LANDMARKER_MODEL_PATH
from fretcoach.errors import CalibrationError
from fretcoach.lesson.chords import GuitarChord
from fretcoach.lesson.session import LessonSession
from fretcoach.tracking.detection_lane import DetectionLane
from fretcoach.tracking.zone_tracker import ZoneTracker
from fretcoach.video.fretboard_detector import OpenCVContourDetector, OpenCVRectangleDetector
from fretcoach.video.frame_extractor import FrameSource
from fretcoach.video.hand_tracker import MediaPipeHandDetector
from fretcoach.video.overlay import render_lesson

WINDOW_NAME = 'FretCoach'


class TapCollector:
    """Collect four mouse clicks for a perspective calibration"""

    def __init__(self, session: LessonSession):
        self.session = session
        self.taps = []
        self.active = False

    def begin(self):
        self.taps = []
        self.active = True
        print("Calibrating: click nut/low E, 4th fret/low E, 4th fret/high E, nut/high E")

    def on_mouse(self, event, x, y, flags, frame_size):
        if not self.active or event != cv2.EVENT_LBUTTONDOWN:
            return
        self.taps.append((x, y))
        if len(self.taps) == 4:
            self.active = False
            try:
                self.session.calibrate(self.taps, frame_size)
            except CalibrationError as e:
                print(f"Calibration failed: {e}")
                return
            print("Calibration set")


def main():
    parser = argparse.ArgumentParser(description='FretCoach - live chord fingering coach')
    parser.add_argument('--chord', type=str, default='C',
                        help=f"Chord to practice ({', '.join(c.value for c in GuitarChord)})")
    parser.add_argument('--camera', type=int, default=0, help='Camera index')
    parser.add_argument('--video', type=str, help='Use a video file instead of the camera')
    parser.add_argument('--model', type=str, default=HAND_LANDMARKER_MODEL_PATH,
                        help='Path to hand_landmarker.task')
    parser.add_argument('--no-mirror', action='store_true', help='Do not mirror the preview')
    parser.add_argument('--max-frames', type=int, help='Stop after N frames')
    parser.add_argument('--headless', action='store_true', help='No preview window, print results')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    mirrored = not args.no_mirror
    chord = GuitarChord.from_name(args.chord)

    tracker = ZoneTracker(
        rectangle_detector=OpenCVRectangleDetector(),
        contour_detector=OpenCVContourDetector(),
        mirrored=mirrored,
    )
    hand_detector = MediaPipeHandDetector(model_path=args.model)
    session = LessonSession(tracker, chord=chord, hand_detector=hand_detector, mirrored=mirrored)
    taps = TapCollector(session)

    source = FrameSource(args.video if args.video else args.camera, max_frames=args.max_frames)

    print(f"Practicing {session.chord.name}: {session.chord.notation}")
    if not args.headless:
        print("Keys: q quit, c calibrate, d default calibration, r track zone, n next chord")

    chords = list(GuitarChord)
    last_message = None

    with hand_detector, source, DetectionLane(session.process_frame) as lane:
        session.start()

        for frame, timestamp in source.frames():
            lane.submit(frame, timestamp)

            result = session.result
            if args.headless:
                if result.message != last_message:
                    details = ", ".join(f"{FINGER_NAMES[f]} {s.value}" for f, s in sorted(result.statuses.items()))
                    print(f"[{timestamp:7.2f}s] {result.message}  ({details})")
                    last_message = result.message
                continue

            preview = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
            if mirrored:
                preview = cv2.flip(preview, 1)

            cv2.imshow(WINDOW_NAME, render_lesson(preview, session))
            h, w = preview.shape[:2]
            cv2.setMouseCallback(WINDOW_NAME, taps.on_mouse, (w, h))

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('c'):
                taps.begin()
            elif key == ord('d'):
                session.reset_calibration()
            elif key == ord('r'):
                session.clear_calibration()
            elif key == ord('n'):
                current = chords.index(GuitarChord.from_name(session.chord.name))
                session.select_chord(chords[(current + 1) % len(chords)])

        session.stop()

    print(f"Processed {lane.processed} frames, dropped {lane.dropped}")
    if not args.headless:
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
