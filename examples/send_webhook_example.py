"""
Example webhook sender.

Start the receiver first:
    uvicorn webhook_receiver.main:app --reload --port 3000

Then post a reconstruction result with a few OBJ meshes attached:
    python examples/send_webhook_example.py --url http://localhost:3000/webhook
"""

import argparse
import json

import httpx

FRAMES = [0, 3, 6, 9, 12]


def build_result() -> dict:
    meshes = [f"patient006_4d_gt_4D_frame{index:02d}.obj" for index in FRAMES]
    return {
        "uuid": "eb1ccf9d-5ff4-4295-8170-843fe8162f76",
        "status": "completed",
        "result": {
            "mesh_format": "obj",
            "total_mesh_files": len(meshes),
            "processed_frame_indices": FRAMES,
            "mesh_files_info": [
                {"filename": name, "frame_index": index} for name, index in zip(meshes, FRAMES)
            ],
        },
        "error": None,
    }


def build_meshes() -> list[tuple[str, tuple[str, bytes, str]]]:
    files = []
    for index in FRAMES:
        body = f"# Wavefront OBJ file - Frame {index}\nv 0.0 0.0 0.0\nv 1.0 0.0 0.0\nf 1 2\n".encode()
        files.append(("meshes", (f"patient006_4d_gt_4D_frame{index:02d}.obj", body, "application/octet-stream")))
    return files


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--url", default="http://localhost:3000/webhook")
    args = parser.parse_args()

    response = httpx.post(
        args.url,
        data={"result": json.dumps(build_result())},
        files=build_meshes(),
        timeout=30,
    )
    response.raise_for_status()
    body = response.json()
    print(f"[webhook] status={response.status_code} upload_dir={body['uploadDir']}")
    print(json.dumps(body["summary"], indent=2))


if __name__ == "__main__":
    main()
