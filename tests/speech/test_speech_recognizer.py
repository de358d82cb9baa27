"""
音声認識モジュールのテスト
"""

import os
import tempfile
import unittest
from unittest.mock import patch, MagicMock

import requests
from src.speech.speech_recognizer import GOOGLE_SPEECH_URL, SpeechRecognizer


class TestSpeechRecognizer(unittest.TestCase):
    """音声認識のテストクラス"""

    def setUp(self):
        """テストの準備"""
        self.speech_recognizer = SpeechRecognizer(
            model_name="openai/whisper-tiny",
            cache_dir="test_models",
        )

    @patch("torch.cuda.is_available")
    def test_init(self, mock_cuda_available):
        """初期化のテスト"""
        mock_cuda_available.return_value = True
        recognizer = SpeechRecognizer()
        self.assertEqual(recognizer.backend, "whisper")
        self.assertEqual(recognizer.model_name, "openai/whisper-large-v3")
        self.assertEqual(recognizer.language, "japanese")
        self.assertEqual(recognizer.language_code, "ja-JP")
        self.assertEqual(recognizer.device, "cuda")
        self.assertEqual(
            recognizer.notification_sound, "src/speech/sounds/start_recording.mp3"
        )

        mock_cuda_available.return_value = False
        recognizer = SpeechRecognizer()
        self.assertEqual(recognizer.device, "cpu")

    def test_api_key_from_environment(self):
        with patch.dict(os.environ, {"GOOGLE_SPEECH_API_KEY": "env-key"}):
            self.assertEqual(SpeechRecognizer(backend="google").api_key, "env-key")
            self.assertEqual(
                SpeechRecognizer(backend="google", api_key="given").api_key, "given"
            )

    @patch("os.path.exists")
    @patch("src.speech.speech_recognizer.PLAYSOUND_AVAILABLE", True)
    def test_play_notification_playsound(self, mock_path_exists):
        """通知音の再生テスト (playsound)"""
        mock_path_exists.return_value = True

        with patch(
            "src.speech.speech_recognizer.playsound", create=True
        ) as mock_playsound:
            self.speech_recognizer.play_notification()
            mock_playsound.assert_called_once_with(
                self.speech_recognizer.notification_sound
            )

    @patch("os.path.exists")
    @patch("src.speech.speech_recognizer.PLAYSOUND_AVAILABLE", False)
    @patch("src.speech.speech_recognizer.SYSTEM", "Darwin")
    @patch("subprocess.call")
    def test_play_notification_macos(self, mock_subprocess_call, mock_path_exists):
        """通知音の再生テスト (macOS)"""
        mock_path_exists.return_value = True

        self.speech_recognizer.play_notification()
        mock_subprocess_call.assert_called_once_with(
            ["afplay", self.speech_recognizer.notification_sound]
        )

    @patch("os.path.exists")
    @patch("src.speech.speech_recognizer.PLAYSOUND_AVAILABLE", False)
    @patch("src.speech.speech_recognizer.SYSTEM", "Linux")
    @patch("subprocess.call")
    def test_play_notification_linux(self, mock_subprocess_call, mock_path_exists):
        """通知音の再生テスト (Linux)"""
        mock_path_exists.return_value = True

        self.speech_recognizer.play_notification()
        mock_subprocess_call.assert_called_once_with(
            ["aplay", self.speech_recognizer.notification_sound]
        )

    @patch("os.path.exists")
    @patch("subprocess.call")
    def test_play_notification_no_file(self, mock_subprocess_call, mock_path_exists):
        """通知音のファイルがない場合は何も再生しない"""
        mock_path_exists.return_value = False

        self.speech_recognizer.play_notification()
        mock_subprocess_call.assert_not_called()

    @patch("pyaudio.PyAudio")
    @patch("wave.open")
    @patch("time.time")
    @patch.object(SpeechRecognizer, "_rms")
    @patch.object(SpeechRecognizer, "play_notification")
    def test_record_audio(
        self,
        mock_play_notification,
        mock_rms,
        mock_time,
        mock_wave_open,
        mock_pyaudio,
    ):
        """録音のテスト"""
        mock_pyaudio_instance = MagicMock()
        mock_pyaudio.return_value = mock_pyaudio_instance

        mock_stream = MagicMock()
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_stream.read.return_value = b"\x00\x00"

        mock_time.return_value = 0

        # 雑音レベル、発話中のチャンク、無音のチャンク
        mock_rms.side_effect = [500, 2000, 100]

        mock_wave_file = MagicMock()
        mock_wave_open.return_value = mock_wave_file
        mock_pyaudio_instance.get_sample_size.return_value = 2

        filename = "test_audio.wav"

        result = self.speech_recognizer.record_audio(
            filename=filename, silence_threshold=1000, silence_duration=0.1
        )

        mock_play_notification.assert_called_once()
        mock_pyaudio_instance.open.assert_called_once()
        # 雑音測定 7 チャンク + 録音 2 チャンク
        self.assertEqual(mock_stream.read.call_count, 9)

        mock_stream.stop_stream.assert_called_once()
        mock_stream.close.assert_called_once()
        mock_pyaudio_instance.terminate.assert_called_once()

        mock_wave_open.assert_called_once_with(filename, "wb")
        mock_wave_file.setnchannels.assert_called_once_with(1)
        mock_wave_file.setsampwidth.assert_called_once_with(2)
        mock_wave_file.setframerate.assert_called_once_with(16000)
        mock_wave_file.writeframes.assert_called_once_with(b"\x00\x00" * 2)
        mock_wave_file.close.assert_called_once()

        self.assertEqual(result, filename)

    @patch("pyaudio.PyAudio")
    @patch("wave.open")
    @patch("time.time")
    @patch.object(SpeechRecognizer, "_rms")
    @patch.object(SpeechRecognizer, "play_notification")
    def test_record_audio_max_duration(
        self,
        mock_play_notification,
        mock_rms,
        mock_time,
        mock_wave_open,
        mock_pyaudio,
    ):
        """最大録音時間に達したら終了する"""
        mock_stream = MagicMock()
        mock_pyaudio.return_value.open.return_value = mock_stream
        mock_stream.read.return_value = b"\x01\x00"

        mock_time.side_effect = [0, 30, 61]
        mock_rms.return_value = 5000

        self.speech_recognizer.record_audio(filename="test_audio.wav", max_duration=60)

        self.assertEqual(mock_stream.read.call_count, 7 + 2)
        mock_stream.stop_stream.assert_called_once()

    def test_rms(self):
        self.assertEqual(SpeechRecognizer._rms(b"\x00\x00\x00\x00"), 0)
        self.assertEqual(SpeechRecognizer._rms(b"\x03\x00\xfd\xff"), 3)

    @patch.object(SpeechRecognizer, "load_model")
    def test_transcribe_whisper(self, mock_load_model):
        """Whisper での文字起こしテスト"""
        self.speech_recognizer.pipe = None

        def side_effect():
            self.speech_recognizer.pipe = MagicMock()
            self.speech_recognizer.pipe.return_value = {"text": " 明日の午後3時に会議 "}

        mock_load_model.side_effect = side_effect

        result = self.speech_recognizer.transcribe("test_audio.wav")

        mock_load_model.assert_called_once()
        self.assertEqual(result, "明日の午後3時に会議")

        kwargs = self.speech_recognizer.pipe.call_args.kwargs
        self.assertEqual(kwargs["generate_kwargs"]["language"], "japanese")

        # モデルが読み込み済みの場合は再読み込みしない
        mock_load_model.reset_mock()
        result = self.speech_recognizer.transcribe("test_audio.wav")
        mock_load_model.assert_not_called()
        self.assertEqual(result, "明日の午後3時に会議")

    def test_transcribe_unsupported_backend(self):
        self.speech_recognizer.backend = "unsupported"
        with self.assertRaises(ValueError):
            self.speech_recognizer.transcribe("test_audio.wav")


class TestGoogleTranscription(unittest.TestCase):
    """Google Speech-to-Text での文字起こしテスト"""

    def setUp(self):
        self.speech_recognizer = SpeechRecognizer(backend="google", api_key="test-key")

        handle, self.audio_file = tempfile.mkstemp(suffix=".wav")
        with os.fdopen(handle, "wb") as f:
            f.write(b"RIFFtest")

    def tearDown(self):
        os.remove(self.audio_file)

    @patch("requests.post")
    def test_transcribe(self, mock_post):
        mock_response = MagicMock()
        mock_response.ok = True
        mock_response.json.return_value = {
            "results": [
                {"alternatives": [{"transcript": "来週月曜 午前10時から"}]},
                {"alternatives": [{"transcript": "2時間 打ち合わせ"}]},
            ]
        }
        mock_post.return_value = mock_response

        result = self.speech_recognizer.transcribe(self.audio_file)

        self.assertEqual(result, "来週月曜 午前10時から2時間 打ち合わせ")

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], GOOGLE_SPEECH_URL)
        self.assertEqual(kwargs["params"], {"key": "test-key"})
        self.assertEqual(kwargs["json"]["config"]["languageCode"], "ja-JP")
        self.assertEqual(kwargs["json"]["config"]["sampleRateHertz"], 16000)
        self.assertEqual(kwargs["json"]["audio"]["content"], "UklGRnRlc3Q=")

    @patch("requests.post")
    def test_transcribe_no_results(self, mock_post):
        mock_response = MagicMock()
        mock_response.ok = True
        mock_response.json.return_value = {}
        mock_post.return_value = mock_response

        self.assertEqual(self.speech_recognizer.transcribe(self.audio_file), "")

    @patch("requests.post")
    def test_transcribe_api_error(self, mock_post):
        mock_response = MagicMock()
        mock_response.ok = False
        mock_response.status_code = 403
        mock_response.json.return_value = {"error": {"message": "API key not valid"}}
        mock_post.return_value = mock_response

        with self.assertRaises(RuntimeError) as context:
            self.speech_recognizer.transcribe(self.audio_file)
        self.assertIn("API key not valid", str(context.exception))

    @patch("requests.post")
    def test_transcribe_api_error_html_body(self, mock_post):
        """JSON でないエラー応答も RuntimeError にする"""
        mock_response = MagicMock()
        mock_response.ok = False
        mock_response.status_code = 502
        mock_response.text = "<html>Bad Gateway</html>"
        mock_response.json.side_effect = ValueError("Expecting value")
        mock_post.return_value = mock_response

        with self.assertRaises(RuntimeError) as context:
            self.speech_recognizer.transcribe(self.audio_file)
        self.assertIn("502", str(context.exception))
        self.assertIn("Bad Gateway", str(context.exception))

    @patch("requests.post")
    def test_transcribe_connection_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("接続エラー")

        with self.assertRaises(requests.exceptions.ConnectionError):
            self.speech_recognizer.transcribe(self.audio_file)

    @patch("requests.post")
    def test_transcribe_without_api_key(self, mock_post):
        with patch.dict(os.environ, {}, clear=True):
            recognizer = SpeechRecognizer(backend="google")

        with self.assertRaises(ValueError):
            recognizer.transcribe(self.audio_file)
        mock_post.assert_not_called()


if __name__ == "__main__":
    unittest.main()
